"""
Storage layer for the web crawler system.
"""

from .duplicate_detector import DedupStore, CrawlRecord, DuplicateContentError, content_fingerprint

__all__ = ['DedupStore', 'CrawlRecord', 'DuplicateContentError', 'content_fingerprint']

"""
Web Crawler System

A polite, priority-aware web crawler built around a two-stage URL frontier.
"""

__version__ = "1.0.0"
__description__ = "A web crawler with a politeness-aware priority frontier and content deduplication"

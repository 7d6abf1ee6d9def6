"""
Web crawler core components.
"""

from .url_frontier import URLFrontier, PendingURL, URLPriority
from .fetcher import WebFetcher, FetchResult
from .parser import ContentParser, ParsedContent
from .url_filter import URLFilter

__all__ = [
    'URLFrontier', 'PendingURL', 'URLPriority',
    'WebFetcher', 'FetchResult',
    'ContentParser', 'ParsedContent',
    'URLFilter'
]

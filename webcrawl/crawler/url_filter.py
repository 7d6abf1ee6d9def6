"""
URL filtering applied before a URL may enter the frontier.
"""

import logging
import posixpath
from typing import Iterable, Optional
from urllib.parse import urlparse


DEFAULT_BLOCKED_DOMAINS = ('spam.com', 'malicious.com')
DEFAULT_ALLOWED_EXTENSIONS = ('.html', '.htm', '.php', '.asp', '.jsp')
DEFAULT_MAX_URL_LENGTH = 2000


class URLFilter:
    """
    Rejects URLs that are too long (spider traps), on a blocked host, use a
    scheme other than http/https, or end in a file extension outside the
    allow-list. Paths without an extension are always accepted.
    """

    allowed_schemes = ('http', 'https')

    def __init__(self, max_url_length: int = DEFAULT_MAX_URL_LENGTH,
                 blocked_domains: Optional[Iterable[str]] = None,
                 allowed_domains: Optional[Iterable[str]] = None,
                 allowed_extensions: Optional[Iterable[str]] = None):
        self.max_url_length = max_url_length
        self.blocked_domains = {
            d.lower() for d in (DEFAULT_BLOCKED_DOMAINS if blocked_domains is None else blocked_domains)
        }
        self.allowed_domains = {d.lower() for d in allowed_domains} if allowed_domains else set()
        self.allowed_extensions = {
            e.lower() for e in (DEFAULT_ALLOWED_EXTENSIONS if allowed_extensions is None else allowed_extensions)
        }
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _matches(host: str, domain: str) -> bool:
        return host == domain or host.endswith('.' + domain)

    def is_allowed(self, url: str) -> bool:
        """Check if URL may be crawled."""
        if len(url) > self.max_url_length:
            self.logger.debug(f"Rejected URL (too long): {url[:100]}...")
            return False

        try:
            parsed = urlparse(url)
            host = (parsed.hostname or '').lower()
        except ValueError:
            return False

        if parsed.scheme not in self.allowed_schemes or not host:
            return False

        if any(self._matches(host, blocked) for blocked in self.blocked_domains):
            self.logger.debug(f"Rejected URL (blocked host): {url}")
            return False

        if self.allowed_domains and not any(self._matches(host, allowed) for allowed in self.allowed_domains):
            return False

        extension = posixpath.splitext(parsed.path.lower())[1]
        if extension and extension not in self.allowed_extensions:
            self.logger.debug(f"Rejected URL (extension {extension}): {url}")
            return False

        return True

    def add_blacklisted_domain(self, domain: str):
        self.blocked_domains.add(domain.lower())

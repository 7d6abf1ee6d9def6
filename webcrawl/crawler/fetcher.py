"""
Web page fetcher with DNS caching, robots.txt support and a per-request timeout.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from urllib.parse import urljoin, urlparse
from urllib.robotparser import RobotFileParser
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError
from aiohttp.resolver import ThreadedResolver


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    content: Optional[str] = None
    content_type: str = ""
    error: Optional[str] = None
    fetch_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None


class DNSResolver:
    """Resolves host names to addresses, caching results for the crawl."""

    def __init__(self, resolver: Optional[ThreadedResolver] = None):
        # Created lazily: aiohttp resolvers bind to the running loop
        self.resolver = resolver
        self.cache: Dict[str, str] = {}
        self.logger = logging.getLogger(__name__)

    async def resolve_host(self, hostname: str) -> str:
        """Return the first resolved address. Raises OSError on failure."""
        if hostname in self.cache:
            return self.cache[hostname]

        if self.resolver is None:
            self.resolver = ThreadedResolver()
        addresses = await self.resolver.resolve(hostname)
        if not addresses:
            raise OSError(f"No addresses for {hostname}")

        address = addresses[0]['host']
        self.cache[hostname] = address
        self.logger.debug(f"Resolved {hostname} -> {address}")
        return address

    def clear_cache(self):
        self.cache.clear()

    async def close(self):
        if self.resolver is not None:
            await self.resolver.close()
            self.resolver = None


class RobotsChecker:
    """Manages robots.txt checking for hosts."""

    def __init__(self, user_agent: str):
        self.user_agent = user_agent
        self.robots_cache: Dict[str, Optional[RobotFileParser]] = {}
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _get_origin(url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}"

    async def can_fetch(self, url: str, session: ClientSession) -> bool:
        """Check if URL can be fetched according to robots.txt."""
        origin = self._get_origin(url)

        if origin not in self.robots_cache:
            robots_url = urljoin(origin, '/robots.txt')
            try:
                async with session.get(robots_url) as response:
                    if response.status == 200:
                        robots_content = await response.text()
                        rp = RobotFileParser()
                        rp.set_url(robots_url)
                        rp.parse(robots_content.splitlines())
                        self.robots_cache[origin] = rp
                    else:
                        # No robots.txt: allow all
                        self.robots_cache[origin] = None
            except (ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
                self.logger.warning(f"Could not fetch robots.txt for {origin}: {e}")
                self.robots_cache[origin] = None

        rp = self.robots_cache[origin]
        return rp.can_fetch(self.user_agent, url) if rp else True


class WebFetcher:
    """
    Fetches web pages: robots check, DNS resolve, HTTP transfer.

    Every failure is reported through FetchResult.error; fetch() does not
    raise for per-URL problems.
    """

    text_types = (
        'text/html',
        'text/plain',
        'text/xml',
        'application/xml',
        'application/xhtml+xml',
    )

    def __init__(self, user_agent: str, request_timeout: float = 5.0,
                 max_concurrent_requests: int = 10, respect_robots_txt: bool = True,
                 max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.respect_robots_txt = respect_robots_txt
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)
        self.robots_checker = RobotsChecker(user_agent) if respect_robots_txt else None
        self.dns_resolver = DNSResolver()

        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'robots_blocked': 0,
            'dns_failures': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.request_timeout),
                headers={'User-Agent': self.user_agent},
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    limit_per_host=10,
                    ttl_dns_cache=300,
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            await self.dns_resolver.close()
            self.logger.info("WebFetcher session closed")

    def _failure(self, url: str, error: str, start_time: float, status_code: int = 0) -> FetchResult:
        self.stats['failed_requests'] += 1
        return FetchResult(
            url=url,
            status_code=status_code,
            error=error,
            fetch_time=time.time() - start_time
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult object containing the response data or error information
        """
        if self.session is None:
            await self.start()

        start_time = time.time()

        async with self.semaphore:
            self.stats['total_requests'] += 1

            try:
                if self.respect_robots_txt and self.robots_checker:
                    if not await self.robots_checker.can_fetch(url, self.session):
                        self.stats['robots_blocked'] += 1
                        self.logger.info(f"Robots.txt blocks access to: {url}")
                        return self._failure(url, "Blocked by robots.txt", start_time, status_code=403)

                hostname = urlparse(url).hostname or ''
                try:
                    await self.dns_resolver.resolve_host(hostname)
                except OSError as e:
                    self.stats['dns_failures'] += 1
                    self.logger.warning(f"DNS resolution failed for {hostname}: {e}")
                    return self._failure(url, f"DNS resolution failed: {e}", start_time)

                async with self.session.get(url) as response:
                    content_type = response.headers.get('content-type', '').lower()

                    if not 200 <= response.status < 300:
                        self.logger.warning(f"HTTP {response.status} for {url}")
                        return self._failure(url, f"HTTP {response.status}: {response.reason}",
                                             start_time, status_code=response.status)

                    if not self._is_text_content(content_type):
                        self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                        return self._failure(url, "Non-text content type", start_time,
                                             status_code=response.status)

                    content = await self._read_content_safely(response)
                    if content is None:
                        return self._failure(url, "Content too large", start_time,
                                             status_code=response.status)

                    self.stats['total_bytes_downloaded'] += len(content)
                    self.stats['successful_requests'] += 1
                    self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} chars)")

                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content=content,
                        content_type=content_type,
                        fetch_time=time.time() - start_time
                    )

            except asyncio.TimeoutError:
                self.logger.warning(f"Timeout fetching {url}")
                return self._failure(url, "Request timeout", start_time)

            except (ClientError, ValueError) as e:
                self.logger.warning(f"Client error fetching {url}: {e}")
                return self._failure(url, f"Client error: {e}", start_time)

    def _is_text_content(self, content_type: str) -> bool:
        return any(text_type in content_type for text_type in self.text_types)

    async def _read_content_safely(self, response) -> Optional[str]:
        """Read the body, or None if it exceeds max_content_size."""
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return content_bytes.decode('utf-8', errors='replace')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

"""
Crawler scheduler that drives the crawl: frontier dispatch, fetch, parse,
deduplication and re-enqueueing of discovered links.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from .fetcher import WebFetcher
from .parser import ContentParser
from .url_filter import URLFilter
from .url_frontier import PendingURL, URLFrontier, URLPriority
from ..storage.duplicate_detector import CrawlRecord, DedupStore, content_fingerprint
from ..utils.config import CrawlerConfig
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor


class NoSeedURLsError(ValueError):
    """Raised when a crawl is started without any seed URL."""
    pass


class CrawlState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class URLOutcome(Enum):
    """Terminal result of processing one dispatched URL."""
    STORED = "stored"
    FETCH_FAILED = "fetch_failed"
    DUPLICATE_CONTENT = "duplicate_content"
    SKIPPED = "skipped"


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    urls_crawled: int = 0
    pages_stored: int = 0
    errors: int = 0
    duplicates_skipped: int = 0
    urls_skipped: int = 0
    urls_filtered: int = 0
    total_bytes_downloaded: int = 0
    average_response_time: float = 0.0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.pages_stored / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlerScheduler:
    """
    Orchestrates a crawl run.

    Workers repeatedly pull the next politeness-eligible URL from the
    frontier. A dispatched URL is processed at most once: it is skipped if
    already visited, in flight elsewhere, or beyond max_depth; otherwise it
    is fetched, fingerprinted, stored if its content is new, and its links
    are enqueued one priority tier lower and one level deeper. Every
    fetched URL ends up in the visited set whatever the outcome.

    The run ends when the frontier is empty with nothing in flight, or when
    max_pages records have been stored.
    """

    def __init__(self, config: CrawlerConfig,
                 fetcher=None,
                 parser: Optional[ContentParser] = None,
                 url_filter: Optional[URLFilter] = None,
                 dedup: Optional[DedupStore] = None,
                 frontier: Optional[URLFrontier] = None,
                 monitor: Optional[CrawlerMonitor] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config
        self.logger = get_crawler_logger(__name__, component='scheduler')

        self.max_pages = config.max_pages
        self.max_depth = config.max_depth
        self.drain_interval = config.drain_interval

        self.fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self.parser = parser or ContentParser()
        self.url_filter = url_filter or URLFilter(
            max_url_length=config.max_url_length,
            blocked_domains=config.blocked_domains,
            allowed_domains=config.allowed_domains,
            allowed_extensions=config.allowed_extensions,
        )
        self.dedup = dedup or DedupStore()
        self.url_frontier = frontier or URLFrontier(config.politeness_delay, clock=clock)
        self.monitor = monitor
        self._clock = clock
        self._sleep = sleep

        self.state = CrawlState.IDLE
        self.stats = CrawlStats(start_time=time.time())
        self.is_running = False
        self.workers: List[asyncio.Task] = []
        self._in_flight: Set[str] = set()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Create and start the default fetcher if none was supplied."""
        if self.fetcher is None:
            self.fetcher = WebFetcher(
                user_agent=self.config.user_agent,
                request_timeout=self.config.request_timeout,
                max_concurrent_requests=self.config.workers,
                respect_robots_txt=self.config.respect_robots_txt
            )
            await self.fetcher.start()
        self.logger.info("Crawler scheduler initialized")

    def add_seed_urls(self, seed_urls: Iterable[str]) -> int:
        """Enqueue seed URLs at the highest priority. Returns the count enqueued."""
        added_count = 0
        for url in seed_urls:
            if not self.url_filter.is_allowed(url):
                self.logger.warning(f"Seed URL rejected by filter: {url}")
                self._record_filtered(url)
                continue
            self.url_frontier.enqueue(PendingURL.for_url(
                url, URLPriority.CRITICAL, 0, enqueued_at=self._clock()))
            added_count += 1

        self.logger.info(f"Added {added_count} seed URLs to frontier")
        return added_count

    async def crawl(self, seed_urls: Optional[Iterable[str]] = None) -> List[CrawlRecord]:
        """
        Run a crawl to completion.

        Args:
            seed_urls: Starting URLs; defaults to the configured seed_urls

        Returns:
            All stored records, in storage order

        Raises:
            NoSeedURLsError: if no seed URL is given
        """
        seeds = list(self.config.seed_urls if seed_urls is None else seed_urls)
        if not seeds:
            raise NoSeedURLsError("At least one seed URL must be provided")

        if self.is_running:
            self.logger.warning("Crawler is already running")
            return self.dedup.get_all_results()

        if self.fetcher is None:
            await self.initialize()

        self.is_running = True
        self.state = CrawlState.RUNNING
        self.stats = CrawlStats(start_time=time.time())
        self.add_seed_urls(seeds)

        stats_task = None
        if self.config.stats_interval > 0:
            stats_task = asyncio.create_task(self._stats_reporter())

        try:
            self.workers = [
                asyncio.create_task(self._worker(f"worker-{i}"))
                for i in range(self.config.workers)
            ]
            self.logger.info(f"Started crawling with {len(self.workers)} workers")
            await asyncio.gather(*self.workers)
        finally:
            self.is_running = False
            self.state = CrawlState.DONE
            self.workers = []
            if stats_task:
                stats_task.cancel()
                await asyncio.gather(stats_task, return_exceptions=True)

        self._log_final_stats()
        return self.dedup.get_all_results()

    def _budget_exhausted(self) -> bool:
        return self.stats.pages_stored >= self.max_pages

    async def _worker(self, worker_id: str):
        """Worker coroutine that processes URLs from the frontier."""
        logger = get_crawler_logger(__name__, component='scheduler', worker=worker_id)
        logger.debug(f"Worker {worker_id} started")

        while self.is_running:
            if self._budget_exhausted():
                logger.info(f"Reached max pages limit: {self.max_pages}")
                break

            if self.url_frontier.is_empty():
                if not self._in_flight:
                    break
                # Another worker may still discover links
                await self._sleep(self.drain_interval)
                continue

            if self.stats.pages_stored + len(self._in_flight) >= self.max_pages:
                # Remaining budget is reserved by in-flight fetches
                await self._sleep(self.drain_interval)
                continue

            pending = self.url_frontier.dispatch_next()
            if pending is None:
                self.state = CrawlState.DRAINING
                await self._sleep(self._drain_delay())
                continue

            self.state = CrawlState.RUNNING
            await self.process_url(pending)

        logger.debug(f"Worker {worker_id} finished")

    def _drain_delay(self) -> float:
        """Wait until the soonest host is eligible, capped at drain_interval."""
        until_eligible = self.url_frontier.time_until_eligible()
        if until_eligible is None:
            return self.drain_interval
        return min(self.drain_interval, until_eligible)

    async def process_url(self, pending: PendingURL) -> URLOutcome:
        """Process a single dispatched URL. Never raises."""
        url = pending.url

        if self.dedup.is_visited(url) or url in self._in_flight:
            self.stats.urls_skipped += 1
            return URLOutcome.SKIPPED

        if pending.depth > self.max_depth:
            self.logger.debug(f"Skipping URL beyond max depth: {url}")
            self.stats.urls_skipped += 1
            return URLOutcome.SKIPPED

        self._in_flight.add(url)
        try:
            return await self._fetch_and_store(pending)
        except Exception as e:
            self.logger.error(f"Error processing {url}: {e}", exc_info=True)
            self.dedup.mark_visited(url)
            self._record_error('processing')
            return URLOutcome.FETCH_FAILED
        finally:
            self._in_flight.discard(url)

    async def _fetch_and_store(self, pending: PendingURL) -> URLOutcome:
        url = pending.url
        self.logger.log_url_event(logging.DEBUG, url, f"Crawling: {url} (depth: {pending.depth})",
                                  depth=pending.depth, priority=pending.priority)

        fetch_result = await self.fetcher.fetch(url)
        self.stats.urls_crawled += 1
        self.stats.average_response_time += (
            (fetch_result.fetch_time - self.stats.average_response_time) / self.stats.urls_crawled
        )
        if self.monitor:
            self.monitor.record_url_crawled(url, fetch_result.status_code, fetch_result.fetch_time)

        if not fetch_result.ok:
            self.logger.warning(f"Failed to fetch {url}: {fetch_result.error}")
            self.dedup.mark_visited(url)
            self._record_error('fetch')
            return URLOutcome.FETCH_FAILED

        content = fetch_result.content
        fingerprint = content_fingerprint(content)
        if self.dedup.is_fingerprint_seen(fingerprint):
            self.logger.info(f"Duplicate content found: {url}")
            self.dedup.mark_visited(url)
            self.stats.duplicates_skipped += 1
            if self.monitor:
                self.monitor.record_duplicate_skipped(url)
            return URLOutcome.DUPLICATE_CONTENT

        parsed_content = self.parser.extract(content, url)
        record = CrawlRecord(
            url=url,
            content=content,
            links=tuple(parsed_content.links),
            status_code=fetch_result.status_code,
            content_type=fetch_result.content_type,
            fingerprint=fingerprint,
        )
        self.dedup.store(record)
        self.dedup.mark_visited(url)
        self.stats.pages_stored += 1
        self.stats.total_bytes_downloaded += len(content)
        if self.monitor:
            self.monitor.record_page_stored(url, len(content))

        queued = self._queue_new_urls(pending, record.links)
        self.logger.info(f"Crawled: {url} - Found {len(record.links)} links, queued {queued}")
        return URLOutcome.STORED

    def _queue_new_urls(self, parent: PendingURL, links: Iterable[str]) -> int:
        """Enqueue unvisited, allowed links one tier lower and one level deeper."""
        depth = parent.depth + 1
        if depth > self.max_depth:
            return 0

        priority = max(int(URLPriority.LOWEST), parent.priority - 1)
        added_count = 0
        for link in links:
            if not self.url_filter.is_allowed(link):
                self._record_filtered(link)
                continue
            if self.dedup.is_visited(link):
                continue
            self.url_frontier.enqueue(PendingURL.for_url(
                link, priority, depth, parent_url=parent.url, enqueued_at=self._clock()))
            added_count += 1

        if self.monitor:
            self.monitor.update_queue_size(len(self.url_frontier))
        return added_count

    def _record_error(self, error_type: str):
        self.stats.errors += 1
        if self.monitor:
            self.monitor.record_error(error_type)

    def _record_filtered(self, url: str):
        self.stats.urls_filtered += 1
        if self.monitor:
            self.monitor.record_url_filtered(url)

    async def _stats_reporter(self):
        """Periodically log crawl statistics."""
        while self.is_running:
            await asyncio.sleep(self.config.stats_interval)
            self._log_current_stats()

    def _log_current_stats(self):
        self.logger.info(
            f"Crawl Progress: "
            f"State={self.state.value}, "
            f"Crawled={self.stats.urls_crawled}, "
            f"Stored={self.stats.pages_stored}, "
            f"Queued={len(self.url_frontier)}, "
            f"Errors={self.stats.errors}, "
            f"Duplicates={self.stats.duplicates_skipped}, "
            f"Rate={self.stats.pages_per_minute:.1f} pages/min"
        )

    def _log_final_stats(self):
        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.log_crawler_stat("pages_stored", self.stats.pages_stored)
        self.logger.log_crawler_stat("urls_fetched", self.stats.urls_crawled)
        self.logger.log_crawler_stat("urls_visited", self.dedup.visited_count)
        self.logger.log_crawler_stat("duplicates_skipped", self.stats.duplicates_skipped)
        self.logger.log_crawler_stat("errors", self.stats.errors)
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"URLs remaining in queue: {len(self.url_frontier)}")
        self.logger.info(f"Frontier stats: {self.url_frontier.get_stats()}")
        self.logger.info(f"Duplicate detection stats: {self.dedup.get_stats()}")
        if hasattr(self.fetcher, 'get_stats'):
            self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")

    async def stop_crawling(self):
        """Stop dispatching new URLs and wait for in-flight ones to finish."""
        self.logger.info("Stopping crawler...")
        self.is_running = False
        if self.workers:
            await asyncio.gather(*self.workers, return_exceptions=True)

    async def close(self):
        """Close the fetcher if this scheduler created it."""
        if self.is_running:
            await self.stop_crawling()

        if self._owns_fetcher and self.fetcher is not None:
            await self.fetcher.close()
            self.fetcher = None

        self.logger.info("Crawler scheduler closed")

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        return {
            'crawled_pages': self.stats.pages_stored,
            'visited_urls': self.dedup.visited_count,
            'queue_empty': self.url_frontier.is_empty(),
            'urls_fetched': self.stats.urls_crawled,
            'errors': self.stats.errors,
            'duplicates_skipped': self.stats.duplicates_skipped,
            'urls_skipped': self.stats.urls_skipped,
            'urls_filtered': self.stats.urls_filtered,
            'elapsed_time': self.stats.elapsed_time,
            'average_response_time': self.stats.average_response_time,
            'state': self.state.value,
        }

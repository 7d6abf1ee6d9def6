import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from webcrawl.crawler.fetcher import FetchResult


class FakeClock:
    """Manually advanced clock; use values exact in binary floating point."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.advance(seconds)
        await asyncio.sleep(0)


class FakeFetcher:
    """Serves canned HTML pages and records when each URL was fetched."""

    def __init__(self, pages: Dict[str, str], clock: Optional[FakeClock] = None,
                 failures: Optional[Dict[str, str]] = None):
        self.pages = pages
        self.clock = clock
        self.failures = failures or {}
        self.fetched: List[Tuple[str, float]] = []

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append((url, self.clock() if self.clock else 0.0))
        if url in self.failures:
            return FetchResult(url=url, status_code=0, error=self.failures[url])
        if url not in self.pages:
            return FetchResult(url=url, status_code=404, error="HTTP 404: Not Found")
        return FetchResult(url=url, status_code=200, content=self.pages[url],
                           content_type='text/html; charset=utf-8', fetch_time=0.01)

    def fetched_urls(self) -> List[str]:
        return [url for url, _ in self.fetched]

    def fetch_time_of(self, url: str) -> float:
        return next(t for u, t in self.fetched if u == url)


def page(*links: str, body: str = "") -> str:
    anchors = "".join(f'<a href="{link}">{link}</a>' for link in links)
    return f"<html><head><title>t</title></head><body><p>{body}</p>{anchors}</body></html>"


@pytest.fixture
def clock():
    return FakeClock()

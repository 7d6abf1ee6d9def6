import asyncio
import signal

from conftest import FakeClock, FakeFetcher, page

from main import CrawlerApp
from webcrawl.crawler.scheduler import CrawlerScheduler, CrawlState
from webcrawl.utils.config import CrawlerConfig

A = "http://a.test/"
B = "http://b.test/"
C = "http://c.test/"


class StoppingFetcher(FakeFetcher):
    """Delivers a stop signal to the app while the first page is fetched."""

    def __init__(self, app, pages, clock):
        super().__init__(pages, clock=clock)
        self.app = app

    async def fetch(self, url):
        if not self.fetched:
            self.app.request_stop(signal.SIGINT)
            await asyncio.sleep(0)
        return await super().fetch(url)


def test_stop_signal_finishes_in_flight_page_and_keeps_stop_task():
    async def go():
        app = CrawlerApp()
        clock = FakeClock()
        fetcher = StoppingFetcher(app, {A: page(B, C), B: page(), C: page()}, clock)
        app.scheduler = CrawlerScheduler(CrawlerConfig(stats_interval=0), fetcher=fetcher,
                                         clock=clock, sleep=clock.sleep)

        results = await app.scheduler.crawl([A])
        assert app._stop_task is not None
        await app._stop_task
        return app, fetcher, results

    app, fetcher, results = asyncio.run(go())

    assert [r.url for r in results] == [A]
    assert fetcher.fetched_urls() == [A]
    assert app._stop_task.done()
    assert app.scheduler.state is CrawlState.DONE
    assert not app.scheduler.url_frontier.is_empty()


def test_stop_request_without_scheduler_is_ignored():
    app = CrawlerApp()
    app.request_stop(signal.SIGTERM)
    assert app._stop_task is None

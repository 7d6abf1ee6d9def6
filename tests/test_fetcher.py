import asyncio

from aiohttp import web
from aiohttp.test_utils import TestServer

from webcrawl.crawler.fetcher import DNSResolver, WebFetcher

INDEX_HTML = '<html><body><a href="/next.html">next</a></body></html>'


def make_app():
    async def robots(request):
        return web.Response(text="User-agent: *\nDisallow: /private\n")

    async def index(request):
        return web.Response(text=INDEX_HTML, content_type="text/html")

    async def private(request):
        return web.Response(text="secret", content_type="text/html")

    async def missing(request):
        return web.Response(status=404, text="nope", content_type="text/html")

    async def image(request):
        return web.Response(body=b"\x89PNG\r\n", content_type="image/png")

    async def slow(request):
        await asyncio.sleep(1.0)
        return web.Response(text="late", content_type="text/html")

    app = web.Application()
    app.router.add_get("/robots.txt", robots)
    app.router.add_get("/", index)
    app.router.add_get("/private/page.html", private)
    app.router.add_get("/missing.html", missing)
    app.router.add_get("/logo.png", image)
    app.router.add_get("/slow.html", slow)
    return app


def fetch_all(paths, **fetcher_options):
    async def go():
        async with TestServer(make_app()) as server:
            options = dict(user_agent="TestCrawler/1.0", request_timeout=5.0)
            options.update(fetcher_options)
            async with WebFetcher(**options) as fetcher:
                results = [await fetcher.fetch(str(server.make_url(path))) for path in paths]
                return results, fetcher.get_stats()

    return asyncio.run(go())


def test_fetches_html():
    (result,), stats = fetch_all(["/"])

    assert result.ok
    assert result.status_code == 200
    assert result.content == INDEX_HTML
    assert result.content_type.startswith("text/html")
    assert stats['successful_requests'] == 1


def test_robots_disallow_is_a_failed_fetch():
    (result,), stats = fetch_all(["/private/page.html"])

    assert not result.ok
    assert result.error == "Blocked by robots.txt"
    assert stats['robots_blocked'] == 1


def test_robots_ignored_when_disabled():
    (result,), _ = fetch_all(["/private/page.html"], respect_robots_txt=False)
    assert result.ok
    assert result.content == "secret"


def test_non_success_status_is_a_failed_fetch():
    (result,), stats = fetch_all(["/missing.html"])

    assert not result.ok
    assert result.status_code == 404
    assert result.error.startswith("HTTP 404")
    assert stats['failed_requests'] == 1


def test_non_text_content_is_a_failed_fetch():
    (result,), _ = fetch_all(["/logo.png"])
    assert not result.ok
    assert result.error == "Non-text content type"


def test_timeout_is_a_failed_fetch():
    (result,), _ = fetch_all(["/slow.html"], request_timeout=0.2, respect_robots_txt=False)
    assert not result.ok
    assert result.content is None


class StubResolver:
    def __init__(self, addresses=None):
        self.addresses = addresses
        self.calls = 0

    async def resolve(self, host, port=0, family=0):
        self.calls += 1
        if self.addresses is None:
            raise OSError(f"cannot resolve {host}")
        return [{'host': address} for address in self.addresses]

    async def close(self):
        pass


def test_dns_results_are_cached():
    stub = StubResolver(["10.0.0.1", "10.0.0.2"])
    resolver = DNSResolver(stub)

    async def go():
        first = await resolver.resolve_host("a.test")
        second = await resolver.resolve_host("a.test")
        return first, second

    assert asyncio.run(go()) == ("10.0.0.1", "10.0.0.1")
    assert stub.calls == 1

    resolver.clear_cache()
    asyncio.run(resolver.resolve_host("a.test"))
    assert stub.calls == 2


def test_dns_failure_is_a_failed_fetch():
    async def go():
        async with WebFetcher("TestCrawler/1.0", respect_robots_txt=False) as fetcher:
            fetcher.dns_resolver = DNSResolver(StubResolver())
            return await fetcher.fetch("http://unresolvable.test/"), fetcher.get_stats()

    result, stats = asyncio.run(go())

    assert not result.ok
    assert result.error.startswith("DNS resolution failed")
    assert stats['dns_failures'] == 1

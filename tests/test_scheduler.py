import unittest
from typing import Dict, List

from crawlfrontier.crawler.fetcher import FetchResult
from crawlfrontier.crawler.scheduler import CrawlerScheduler
from crawlfrontier.utils.config import Config, CrawlerConfig


def link_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>page</title></head><body>{anchors}</body></html>"


SITE = {
    "http://root-url.com/": link_page("/a.html", "/b.html", "http://offsite-url.com/"),
    "http://root-url.com/a.html": link_page("/a1.html", "/b.html", "http://root-url.com/"),
    "http://root-url.com/b.html": link_page("/b1.html", "/file.txt"),
    "http://root-url.com/a1.html": link_page("/a2.html"),
    "http://root-url.com/b1.html": link_page(),
    "http://root-url.com/a2.html": link_page(),
    "http://root-url.com/file.txt": None,
    "http://offsite-url.com/": link_page(),
}


class FakeFetcher:
    """Serves pages from a dict instead of the network."""

    def __init__(self, pages: Dict[str, str]):
        self.pages = pages
        self.fetched: List[str] = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append(url)
        if url not in self.pages:
            return FetchResult(url=url, status_code=404, content_type="text/html", content="")
        content = self.pages[url]
        if content is None:
            return FetchResult(url=url, status_code=200, content_type="text/plain", content="plain text")
        return FetchResult(url=url, status_code=200, content_type="text/html; charset=utf-8", content=content)


class RecordingScheduler(CrawlerScheduler):
    idle_poll_interval = 0

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pages = []
        self.non_html = []
        self.failures = []

    async def on_page(self, request, result, page):
        self.pages.append((request.request_url, request.crawl_depth))

    async def on_non_html_response(self, request, result):
        self.non_html.append(request.request_url)

    async def on_request_error(self, request, result):
        self.failures.append((request.request_url, result.status_code))


def make_config(**overrides) -> Config:
    crawler = CrawlerConfig(
        seed_urls=["http://root-url.com/"],
        filter_offsite_requests=True,
        max_concurrent_requests=1,
    )
    for key, value in overrides.items():
        setattr(crawler, key, value)
    return Config(crawler=crawler)


class CrawlerSchedulerTests(unittest.IsolatedAsyncioTestCase):
    async def test_crawl_visits_pages_breadth_first(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(), fetcher=fetcher)

        await scheduler.initialize()
        await scheduler.start_crawling()
        await scheduler.close()

        self.assertEqual(
            [
                "http://root-url.com/",
                "http://root-url.com/a.html",
                "http://root-url.com/b.html",
                "http://root-url.com/a1.html",
                "http://root-url.com/b1.html",
                "http://root-url.com/file.txt",
                "http://root-url.com/a2.html",
            ],
            fetcher.fetched
        )
        self.assertEqual([0, 1, 1, 2, 2, 3], [depth for _, depth in scheduler.pages])
        self.assertEqual(["http://root-url.com/file.txt"], scheduler.non_html)
        self.assertTrue(fetcher.started)
        self.assertTrue(fetcher.closed)
        self.assertFalse(scheduler.frontier.has_next_request())

    async def test_offsite_links_followed_when_filter_disabled(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(filter_offsite_requests=False), fetcher=fetcher)

        await scheduler.start_crawling()

        self.assertIn("http://offsite-url.com/", fetcher.fetched)
        self.assertEqual(len(fetcher.fetched), len(set(fetcher.fetched)))

    async def test_max_crawl_depth_limits_the_crawl(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(max_crawl_depth=1), fetcher=fetcher)

        await scheduler.start_crawling()

        self.assertEqual(
            ["http://root-url.com/", "http://root-url.com/a.html", "http://root-url.com/b.html"],
            fetcher.fetched
        )

    async def test_max_pages_stops_early(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(), fetcher=fetcher)

        await scheduler.start_crawling(max_pages=2)

        self.assertEqual(2, len(fetcher.fetched))
        self.assertTrue(scheduler.frontier.has_next_request())

    async def test_failed_fetch_goes_to_error_hook(self) -> None:
        fetcher = FakeFetcher({"http://root-url.com/": link_page("/gone.html")})
        scheduler = RecordingScheduler(make_config(), fetcher=fetcher)

        await scheduler.start_crawling()

        self.assertEqual([("http://root-url.com/gone.html", 404)], scheduler.failures)
        self.assertEqual(1, scheduler.get_stats()['errors'])

    async def test_several_workers_fetch_every_page_once(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(max_concurrent_requests=3), fetcher=fetcher)

        await scheduler.start_crawling()

        self.assertEqual(7, len(fetcher.fetched))
        self.assertEqual(len(fetcher.fetched), len(set(fetcher.fetched)))

    async def test_stats_and_metrics(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(), fetcher=fetcher)

        await scheduler.start_crawling()
        stats = scheduler.get_stats()

        self.assertEqual(7, stats['urls_crawled'])
        self.assertEqual(6, stats['pages_parsed'])
        self.assertEqual(6, stats['requests_admitted'])
        self.assertEqual(0, stats['urls_in_queue'])
        self.assertFalse(stats['is_running'])
        self.assertEqual(6, scheduler.monitor.metrics.get_value('requests_admitted_total'))
        self.assertEqual(7, scheduler.monitor.metrics.get_value('urls_crawled_total'))

    async def test_rejections_are_counted_by_reason(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(), fetcher=fetcher)

        await scheduler.start_crawling()
        metrics = scheduler.monitor.metrics

        # offsite-url.com from the root page; b.html and the root again from a.html
        self.assertEqual(1, metrics.get_value('requests_rejected_total', {'reason': 'offsite'}))
        self.assertEqual(2, metrics.get_value('requests_rejected_total', {'reason': 'duplicate'}))
        self.assertEqual(0, metrics.get_value('requests_rejected_total', {'reason': 'filtered'}))
        self.assertEqual(3, scheduler.get_stats()['requests_rejected'])

    async def test_depth_rejections_are_counted_separately(self) -> None:
        fetcher = FakeFetcher(SITE)
        scheduler = RecordingScheduler(make_config(max_crawl_depth=1), fetcher=fetcher)

        await scheduler.start_crawling()
        metrics = scheduler.monitor.metrics

        self.assertEqual(5, metrics.get_value('requests_rejected_total', {'reason': 'too_deep'}))
        self.assertEqual(1, metrics.get_value('requests_rejected_total', {'reason': 'offsite'}))
        self.assertEqual(0, metrics.get_value('requests_rejected_total', {'reason': 'duplicate'}))

    async def test_hook_errors_do_not_stop_the_crawl(self) -> None:
        class FailingScheduler(RecordingScheduler):
            async def on_page(self, request, result, page):
                raise RuntimeError("hook failed")

        fetcher = FakeFetcher(SITE)
        scheduler = FailingScheduler(make_config(), fetcher=fetcher)

        await scheduler.start_crawling()

        self.assertEqual(["http://root-url.com/"], fetcher.fetched)
        self.assertEqual(1, scheduler.get_stats()['errors'])


if __name__ == "__main__":
    unittest.main()

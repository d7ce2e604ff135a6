"""
Crawler scheduler that drives the crawl loop over the frontier.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from .request import CrawlRequest, CrawlRequestError, build_child_request
from .url_frontier import CrawlFrontier
from .fetcher import WebFetcher, FetchResult
from .parser import ContentParser, ParsedPage
from ..utils.config import Config
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor, MetricsCollector


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    urls_crawled: int = 0
    pages_parsed: int = 0
    errors: int = 0
    links_discovered: int = 0
    requests_admitted: int = 0
    requests_rejected: int = 0
    invalid_links: int = 0
    total_bytes_downloaded: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.urls_crawled / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlerScheduler:
    """
    Pulls requests from the frontier, fetches them, and feeds the links
    found on each page back into the frontier.

    Subclasses customise the crawl by overriding on_page,
    on_non_html_response and on_request_error.
    """

    idle_poll_interval = 0.05

    def __init__(self, config: Config, fetcher: Optional[WebFetcher] = None,
                 parser: Optional[ContentParser] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.frontier: Optional[CrawlFrontier] = None
        self.fetcher = fetcher
        self.parser = parser or ContentParser()
        self.monitor = monitor or CrawlerMonitor(MetricsCollector())

        # Crawl state
        self.stats = CrawlStats(start_time=time.time())
        self.is_running = False
        self.workers: List[asyncio.Task] = []
        self._in_flight = 0

    async def initialize(self):
        """Build the frontier from configuration and open the fetcher."""
        crawler_config = self.config.crawler
        self.frontier = CrawlFrontier(crawler_config)

        if self.fetcher is None:
            self.fetcher = WebFetcher.from_config(crawler_config)
        await self.fetcher.start()

        self.monitor.update_queue_size(self.frontier.pending_count())
        self.logger.info("Crawler scheduler initialized successfully")

    async def start_crawling(self, max_pages: Optional[int] = None,
                             max_duration: Optional[int] = None):
        """
        Run the crawl until the frontier is exhausted or a limit is hit.

        Args:
            max_pages: Maximum number of pages to crawl (None for unlimited)
            max_duration: Maximum duration in seconds (None for unlimited)
        """
        if self.is_running:
            self.logger.warning("Crawler is already running")
            return

        if self.frontier is None:
            await self.initialize()

        self.is_running = True
        self.stats = CrawlStats(start_time=time.time())

        try:
            num_workers = self.config.crawler.max_concurrent_requests
            self.workers = [
                asyncio.create_task(self._worker(f"worker-{i}", max_pages, max_duration))
                for i in range(num_workers)
            ]
            self.logger.info(f"Started crawling with {num_workers} workers")

            await asyncio.gather(*self.workers)
            self._log_final_stats()

        finally:
            self.is_running = False
            await self._cleanup_workers()

    def _limits_reached(self, max_pages: Optional[int], max_duration: Optional[int]) -> bool:
        if max_pages and self.stats.urls_crawled + self._in_flight >= max_pages:
            self.logger.info(f"Reached max pages limit: {max_pages}")
            return True

        if max_duration and self.stats.elapsed_time >= max_duration:
            self.logger.info(f"Reached max duration: {max_duration} seconds")
            return True

        return False

    async def _worker(self, worker_id: str, max_pages: Optional[int] = None,
                      max_duration: Optional[int] = None):
        """Worker coroutine that processes requests from the frontier."""
        worker_logger = get_crawler_logger(__name__, worker=worker_id)
        worker_logger.debug(f"Worker {worker_id} started")

        while self.is_running:
            if self._limits_reached(max_pages, max_duration):
                break

            request = self.frontier.get_next_request()
            if request is None:
                # Another worker may still feed new links
                if self._in_flight == 0:
                    break
                await asyncio.sleep(self.idle_poll_interval)
                continue

            self._in_flight += 1
            self.monitor.update_active_workers(self._in_flight)
            try:
                await self._process_request(request, worker_logger)
            except Exception as e:
                self.stats.errors += 1
                self.monitor.record_error('processing')
                self.logger.error(f"Worker {worker_id} error on {request.request_url}: {e}", exc_info=True)
            finally:
                self._in_flight -= 1
                self.monitor.update_active_workers(self._in_flight)
                self.monitor.update_queue_size(self.frontier.pending_count())

        worker_logger.debug(f"Worker {worker_id} finished")

    async def _process_request(self, request: CrawlRequest, worker_logger):
        """Fetch one request and hand the outcome to the hooks."""
        worker_logger.log_request_event(logging.DEBUG, request, f"Fetching {request.request_url}")

        result = await self.fetcher.fetch(request.request_url)
        self.stats.urls_crawled += 1
        self.monitor.record_url_crawled(request.request_url, result.status_code, result.fetch_time)

        if not result.ok:
            self.stats.errors += 1
            self.monitor.record_error('fetch' if result.error else f"http_{result.status_code}")
            await self.on_request_error(request, result)
            return

        if not result.is_html or result.content is None:
            await self.on_non_html_response(request, result)
            return

        self.stats.total_bytes_downloaded += len(result.content)
        page = self.parser.parse(result.final_url or request.request_url, result.content)
        self.stats.pages_parsed += 1

        await self.on_page(request, result, page)
        self._feed_links(request, page)

    def _feed_links(self, parent: CrawlRequest, page: ParsedPage):
        """Build a child request for every link and offer it to the frontier."""
        admitted = 0
        for link in page.links:
            self.stats.links_discovered += 1
            try:
                child = build_child_request(parent, link)
            except CrawlRequestError as e:
                self.stats.invalid_links += 1
                self.logger.debug(f"Skipping link {link}: {e}")
                continue

            reason = self.frontier.offer_request(child)
            if reason is None:
                admitted += 1
                self.stats.requests_admitted += 1
                self.monitor.record_request_admitted()
            else:
                self.stats.requests_rejected += 1
                self.monitor.record_request_rejected(reason)

        self.logger.debug(f"Queued {admitted} of {len(page.links)} links from {parent.request_url}")

    async def on_page(self, request: CrawlRequest, result: FetchResult, page: ParsedPage):
        """Called for every successfully fetched HTML page."""
        self.logger.info(f"Crawled {request.request_url} (depth {request.crawl_depth}, "
                         f"{len(page.links)} links)")

    async def on_non_html_response(self, request: CrawlRequest, result: FetchResult):
        """Called when a request returns something other than HTML."""
        self.logger.debug(f"Non-HTML response for {request.request_url}: {result.content_type}")

    async def on_request_error(self, request: CrawlRequest, result: FetchResult):
        """Called when a request fails or returns an error status."""
        self.logger.warning(f"Failed to fetch {request.request_url}: "
                            f"{result.error or result.status_code}")

    def _log_final_stats(self):
        frontier_stats = self.frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Total URLs crawled: {self.stats.urls_crawled}")
        self.logger.info(f"Pages parsed: {self.stats.pages_parsed}")
        self.logger.info(f"Links discovered: {self.stats.links_discovered}")
        self.logger.info(f"Requests admitted: {self.stats.requests_admitted}")
        self.logger.info(f"Requests rejected: {self.stats.requests_rejected}")
        self.logger.info(f"Errors: {self.stats.errors}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Average rate: {self.stats.pages_per_minute:.1f} pages/min")
        self.logger.info(f"Requests remaining in frontier: {frontier_stats['total_queued']}")
        self.logger.info(f"Frontier stats: {frontier_stats}")

    async def stop_crawling(self):
        """Stop the crawling process gracefully."""
        self.logger.info("Stopping crawler...")
        self.is_running = False
        await self._cleanup_workers()

    async def _cleanup_workers(self):
        """Cancel and cleanup worker tasks."""
        if self.workers:
            for worker in self.workers:
                if not worker.done():
                    worker.cancel()

            await asyncio.gather(*self.workers, return_exceptions=True)
            self.workers.clear()

    async def close(self):
        """Stop the crawl and release the fetcher session."""
        if self.is_running:
            await self.stop_crawling()

        if self.fetcher:
            await self.fetcher.close()

        self.logger.info("Crawler scheduler closed")

    def get_stats(self) -> Dict[str, Any]:
        """Get current crawl statistics."""
        return {
            'urls_crawled': self.stats.urls_crawled,
            'pages_parsed': self.stats.pages_parsed,
            'errors': self.stats.errors,
            'links_discovered': self.stats.links_discovered,
            'requests_admitted': self.stats.requests_admitted,
            'requests_rejected': self.stats.requests_rejected,
            'invalid_links': self.stats.invalid_links,
            'elapsed_time': self.stats.elapsed_time,
            'pages_per_minute': self.stats.pages_per_minute,
            'total_bytes_downloaded': self.stats.total_bytes_downloaded,
            'urls_in_queue': self.frontier.pending_count() if self.frontier else 0,
            'is_running': self.is_running
        }

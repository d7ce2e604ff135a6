"""
Page fetching for crawl requests, built on aiohttp.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError

from ..utils.config import CrawlerConfig

# Bodies of any other content type are never downloaded
TEXT_CONTENT_TYPES = (
    'text/html',
    'text/plain',
    'text/xml',
    'application/xml',
    'application/xhtml+xml',
)


@dataclass
class FetchResult:
    """Outcome of fetching one request URL."""
    url: str
    status_code: int
    content: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    final_url: Optional[str] = None

    @property
    def is_html(self) -> bool:
        return bool(self.content_type) and 'html' in self.content_type

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 400


class WebFetcher:
    """
    Downloads crawl requests with at most max_concurrent_requests in flight.

    Network failures and timeouts are reported through FetchResult.error,
    never raised, so a dead host cannot stop a crawl worker.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30,
                 max_concurrent_requests: int = 10,
                 max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'skipped_bodies': 0,
            'total_bytes_downloaded': 0
        }

    @classmethod
    def from_config(cls, config: CrawlerConfig) -> 'WebFetcher':
        return cls(
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            max_concurrent_requests=config.max_concurrent_requests
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the shared HTTP session. Calling it twice is harmless."""
        if self.session is not None:
            return

        connector = aiohttp.TCPConnector(
            limit=self.max_concurrent_requests * 2,
            ttl_dns_cache=300
        )
        self.session = aiohttp.ClientSession(
            timeout=ClientTimeout(total=self.request_timeout),
            headers={'User-Agent': self.user_agent},
            connector=connector
        )
        self.logger.info(f"Fetcher session opened (timeout={self.request_timeout}s, "
                         f"concurrency={self.max_concurrent_requests})")

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("Fetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Returns:
            FetchResult with the decoded body for text responses, without a
            body for other content types or oversized pages, and with error
            set when the request itself failed
        """
        if self.session is None:
            await self.start()

        started = time.time()
        async with self.semaphore:
            self.stats['total_requests'] += 1
            try:
                result = await self._download(url)
            except asyncio.TimeoutError:
                error = "Request timeout"
                self.logger.warning(f"Timeout fetching {url}")
            except ClientError as e:
                error = f"Client error: {e}"
                self.logger.warning(f"Client error fetching {url}: {e}")
            else:
                result.fetch_time = time.time() - started
                return result

        self.stats['failed_requests'] += 1
        return FetchResult(url=url, status_code=0, error=error, fetch_time=time.time() - started)

    async def _download(self, url: str) -> FetchResult:
        async with self.session.get(url) as response:
            content_type = response.headers.get('content-type', '').lower()
            result = FetchResult(
                url=url,
                status_code=response.status,
                headers=dict(response.headers),
                content_type=content_type,
                final_url=str(response.url)
            )

            if not any(text_type in content_type for text_type in TEXT_CONTENT_TYPES):
                self.stats['skipped_bodies'] += 1
                self.logger.debug(f"Not downloading {content_type or 'untyped'} body of {url}")
                return result

            result.content = await self._read_body(response)
            if result.content is not None:
                self.stats['successful_requests'] += 1
                self.stats['total_bytes_downloaded'] += len(result.content)
            else:
                self.stats['skipped_bodies'] += 1

            self.logger.debug(f"Fetched {url}: HTTP {response.status}")
            return result

    async def _read_body(self, response: aiohttp.ClientResponse) -> Optional[str]:
        """Decode the body, or return None once it passes max_content_size."""
        declared = response.headers.get('content-length')
        if declared and declared.isdigit() and int(declared) > self.max_content_size:
            self.logger.warning(f"Skipping {response.url}: declared size {declared} bytes over limit")
            return None

        body = bytearray()
        async for chunk in response.content.iter_chunked(8192):
            body.extend(chunk)
            if len(body) > self.max_content_size:
                self.logger.warning(f"Skipping {response.url}: body grew past {self.max_content_size} bytes")
                return None

        try:
            return body.decode(response.charset or 'utf-8')
        except (UnicodeDecodeError, LookupError):
            return body.decode('utf-8', errors='replace')

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)

"""
Crawl frontier: decides which request is fetched next and whether a
discovered request is fetched at all.
"""

import logging
import threading
from typing import Any, Dict, Optional

from .request import CrawlRequest, build_seed_request
from .request_queue import CrawlStrategy, RequestQueue
from .scope_filter import ScopeFilter
from ..storage.duplicate_filter import DuplicateFilter
from ..utils.config import CrawlerConfig

REJECTED_OFFSITE = 'offsite'
REJECTED_TOO_DEEP = 'too_deep'
REJECTED_DUPLICATE = 'duplicate'


class CrawlFrontier:
    """
    Holds all discovered-but-not-yet-fetched crawl requests.

    Fed requests pass the scope filter, the depth limit and the duplicate
    filter before they are queued. Rejection is routine and never raises.
    The policy switches are read from the config on every feed, so changing
    them mid-crawl only affects later feeds. All public methods hold one
    lock, so the duplicate check-and-record is atomic across threads.
    """

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

        self.scope_filter = ScopeFilter(config)
        self.duplicate_filter = DuplicateFilter(config)
        self.queue = RequestQueue(CrawlStrategy(config.crawl_strategy))

        # Statistics
        self.stats = {
            'total_admitted': 0,
            'total_dequeued': 0,
            'offsite_rejected': 0,
            'depth_rejected': 0,
            'duplicate_rejected': 0
        }

        self._add_seed_requests()

    def _add_seed_requests(self):
        """Queue the configured seeds, in order, at depth 0."""
        for url in self.config.seed_urls:
            request = build_seed_request(url)
            self.scope_filter.add_seed_domain(request.top_private_domain)

            if not self.duplicate_filter.admit_once(request):
                self.stats['duplicate_rejected'] += 1
                self.logger.debug(f"Skipping repeated seed URL: {url}")
                continue

            self.queue.push(request)
            self.stats['total_admitted'] += 1

        self.logger.info(
            f"Initialized crawl frontier with {len(self.queue)} seed requests "
            f"from {len(self.scope_filter.seed_domains)} domains"
        )

    @property
    def seed_domains(self):
        return frozenset(self.scope_filter.seed_domains)

    def _exceeds_max_depth(self, request: CrawlRequest) -> bool:
        max_depth = self.config.max_crawl_depth
        return max_depth > 0 and request.crawl_depth > max_depth

    def feed_request(self, request: CrawlRequest) -> bool:
        """
        Offer a discovered request to the frontier.

        Returns:
            True if the request was queued, False if it was filtered out
        """
        return self.offer_request(request) is None

    def offer_request(self, request: CrawlRequest) -> Optional[str]:
        """
        Offer a discovered request and report why it was turned away.

        Returns:
            None if the request was queued, otherwise the rejection reason:
            REJECTED_OFFSITE, REJECTED_TOO_DEEP or REJECTED_DUPLICATE
        """
        with self._lock:
            if not self.scope_filter.is_in_scope(request):
                self.stats['offsite_rejected'] += 1
                self.logger.debug(f"Offsite request rejected: {request.request_url}")
                return REJECTED_OFFSITE

            if self._exceeds_max_depth(request):
                self.stats['depth_rejected'] += 1
                self.logger.debug(
                    f"Request beyond max depth {self.config.max_crawl_depth} rejected: "
                    f"{request.request_url} (depth {request.crawl_depth})"
                )
                return REJECTED_TOO_DEEP

            if not self.duplicate_filter.admit_once(request):
                self.stats['duplicate_rejected'] += 1
                return REJECTED_DUPLICATE

            self.queue.push(request)
            self.stats['total_admitted'] += 1
            self.logger.debug(f"Added request to frontier: {request.request_url} (depth {request.crawl_depth})")
            return None

    def has_next_request(self) -> bool:
        """Check whether a request is waiting to be fetched."""
        with self._lock:
            return not self.queue.is_empty()

    def get_next_request(self) -> Optional[CrawlRequest]:
        """
        Remove and return the next request in traversal order.
        Returns None when the frontier is empty.
        """
        with self._lock:
            request = self.queue.pop()
            if request is not None:
                self.stats['total_dequeued'] += 1
                self.logger.debug(f"Retrieved request from frontier: {request.request_url}")
            return request

    def pending_count(self) -> int:
        with self._lock:
            return len(self.queue)

    def get_stats(self) -> Dict[str, Any]:
        """Get frontier statistics."""
        with self._lock:
            return {
                **self.stats,
                'total_queued': len(self.queue),
                'total_seen': self.duplicate_filter.seen_count(),
                'seed_domains': sorted(self.scope_filter.seed_domains)
            }

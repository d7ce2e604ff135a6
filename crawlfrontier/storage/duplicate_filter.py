"""
Duplicate request detection over the crawl's lifetime.
"""

import logging
from typing import Dict, Set, TYPE_CHECKING

from ..utils.config import CrawlerConfig

if TYPE_CHECKING:
    from ..crawler.request import CrawlRequest


class DuplicateFilter:
    """
    Remembers every request URL ever admitted to the frontier.

    URLs are compared by exact string equality. A URL is recorded at
    admission time, so it can never be pending twice nor be admitted again
    after it has been dequeued. The seen set only grows.
    """

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.seen_urls: Set[str] = set()

        # Statistics
        self.stats = {
            'total_checks': 0,
            'duplicates_rejected': 0
        }

    def admit_once(self, request: 'CrawlRequest') -> bool:
        """
        Record the request URL and report whether it may be admitted.

        Returns:
            True if the URL is new or duplicate filtering is disabled,
            False if the URL was already seen
        """
        self.stats['total_checks'] += 1
        url = request.request_url

        if not self.config.filter_duplicate_requests:
            self.seen_urls.add(url)
            return True

        if url in self.seen_urls:
            self.stats['duplicates_rejected'] += 1
            self.logger.debug(f"Duplicate request rejected: {url}")
            return False

        self.seen_urls.add(url)
        return True

    def is_seen(self, url: str) -> bool:
        return url in self.seen_urls

    def seen_count(self) -> int:
        return len(self.seen_urls)

    def get_stats(self) -> Dict[str, int]:
        """Get duplicate detection statistics."""
        return {**self.stats, 'total_seen_urls': len(self.seen_urls)}

"""
Scope filter deciding whether a request stays on the seed sites.
"""

from typing import Iterable, Set

from .request import CrawlRequest
from ..utils.config import CrawlerConfig


class ScopeFilter:
    """
    Same-site check against the top private domains of the seeds.

    The offsite switch is read from the config on every call, so toggling
    it mid-crawl affects subsequent checks only.
    """

    def __init__(self, config: CrawlerConfig, seed_domains: Iterable[str] = ()):
        self.config = config
        self.seed_domains: Set[str] = set(seed_domains)

    def add_seed_domain(self, domain: str):
        self.seed_domains.add(domain)

    def is_in_scope(self, request: CrawlRequest) -> bool:
        if not self.config.filter_offsite_requests:
            return True
        return request.top_private_domain in self.seed_domains

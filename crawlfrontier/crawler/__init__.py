"""
Web crawler core components.
"""

from .request import (
    CrawlRequest, CrawlRequestError, InvalidUrlError, MissingFieldError,
    build_crawl_request, build_seed_request, build_child_request, get_top_private_domain
)
from .request_queue import RequestQueue, CrawlStrategy
from .scope_filter import ScopeFilter
from .url_frontier import CrawlFrontier
from .fetcher import WebFetcher, FetchResult
from .parser import ContentParser, ParsedPage

__all__ = [
    'CrawlRequest', 'CrawlRequestError', 'InvalidUrlError', 'MissingFieldError',
    'build_crawl_request', 'build_seed_request', 'build_child_request', 'get_top_private_domain',
    'RequestQueue', 'CrawlStrategy', 'ScopeFilter', 'CrawlFrontier',
    'WebFetcher', 'FetchResult',
    'ContentParser', 'ParsedPage'
]

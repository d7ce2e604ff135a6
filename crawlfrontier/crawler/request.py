"""
Crawl request value type and the builder functions that validate it.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import tldextract


# Bundled public suffix snapshot only; resolving a domain never touches the network.
_DOMAIN_EXTRACTOR = tldextract.TLDExtract(
    suffix_list_urls=(),
    cache_dir=None,
    include_psl_private_domains=True
)

# One DNS label of an IDNA-encoded host
_HOST_LABEL = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")


class CrawlRequestError(Exception):
    """Base error for crawl request construction."""
    pass


class InvalidUrlError(CrawlRequestError):
    """Raised when a URL cannot be parsed or its domain cannot be resolved."""
    pass


class MissingFieldError(CrawlRequestError):
    """Raised when a required request field is absent."""
    pass


@dataclass(frozen=True)
class CrawlRequest:
    """One URL to visit plus where it was discovered."""
    request_url: str
    referer_url: str
    top_private_domain: str
    crawl_depth: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            'request_url': self.request_url,
            'referer_url': self.referer_url,
            'top_private_domain': self.top_private_domain,
            'crawl_depth': self.crawl_depth
        }


def _check_host_labels(url: str, host: str):
    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise InvalidUrlError(f"Malformed host in {url!r}: {e}") from e

    labels = ascii_host.lower().split(".")
    if labels[-1] == "":
        # Fully qualified form, e.g. "example.com."
        labels.pop()
    if not labels or not all(_HOST_LABEL.match(label) for label in labels):
        raise InvalidUrlError(f"Malformed host in {url!r}: {host!r}")


def get_top_private_domain(url: str) -> str:
    """
    Resolve the registrable (eTLD+1) domain of a URL's host.

    Raises:
        InvalidUrlError: the URL has no scheme or host, the host is not a
            valid DNS name, or it has no registrable domain (bare public
            suffix, IP address, localhost)
    """
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
        parsed.port  # raises on a non-numeric or out-of-range port
    except ValueError as e:
        raise InvalidUrlError(f"Malformed URL {url!r}: {e}") from e

    if not parsed.scheme or not host:
        raise InvalidUrlError(f"URL must be absolute: {url!r}")

    _check_host_labels(url, host)

    extracted = _DOMAIN_EXTRACTOR(host)
    if not extracted.domain or not extracted.suffix:
        raise InvalidUrlError(f"Cannot resolve top private domain of {host!r}")

    return f"{extracted.domain}.{extracted.suffix}"


def build_crawl_request(request_url: Optional[str], referer_url: Optional[str], *,
                        crawl_depth: Optional[int] = None, referer_depth: int = 0,
                        top_private_domain: Optional[str] = None) -> CrawlRequest:
    """
    Validate the given fields and build an immutable crawl request.

    Args:
        request_url: Absolute URL to fetch
        referer_url: URL the request was discovered on
        crawl_depth: Explicit depth; defaults to referer_depth + 1
        referer_depth: Depth the caller associates with referer_url
        top_private_domain: Explicit domain; derived from request_url if omitted

    Returns:
        CrawlRequest
    """
    if not request_url:
        raise MissingFieldError("request_url is required")
    if not referer_url:
        raise MissingFieldError("referer_url is required")

    if crawl_depth is None:
        if referer_depth < 0:
            raise CrawlRequestError(f"referer_depth must be non-negative, got {referer_depth}")
        crawl_depth = referer_depth + 1
    elif crawl_depth < 0:
        raise CrawlRequestError(f"crawl_depth must be non-negative, got {crawl_depth}")

    if top_private_domain is None:
        top_private_domain = get_top_private_domain(request_url)
    else:
        # Still reject URLs that could never be fetched
        get_top_private_domain(request_url)

    return CrawlRequest(
        request_url=request_url,
        referer_url=referer_url,
        top_private_domain=top_private_domain,
        crawl_depth=crawl_depth
    )


def build_seed_request(url: str) -> CrawlRequest:
    """Build a depth-0 request that refers to itself."""
    return build_crawl_request(url, url, crawl_depth=0)


def build_child_request(parent: CrawlRequest, url: str) -> CrawlRequest:
    """Build a request for a link discovered on the parent's page."""
    return build_crawl_request(url, parent.request_url, referer_depth=parent.crawl_depth)

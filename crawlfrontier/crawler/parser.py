"""
HTML parser extracting the outbound links of a fetched page.
"""

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse, urlunparse
from dataclasses import dataclass, field
from bs4 import BeautifulSoup


SKIP_EXTENSIONS = (
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg', '.webp',
    '.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.zip', '.rar', '.tar', '.gz', '.exe', '.dmg', '.iso',
    '.mp3', '.mp4', '.avi', '.mov', '.wmv', '.flv',
    '.css', '.js', '.ico', '.woff', '.woff2', '.ttf', '.eot'
)


@dataclass
class ParsedPage:
    """Links and basic metadata of a parsed page."""
    url: str
    title: Optional[str] = None
    canonical_url: Optional[str] = None
    links: List[str] = field(default_factory=list)


class ContentParser:
    """
    Parses HTML content to extract the page title and its links.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def parse(self, url: str, html_content: str) -> ParsedPage:
        """
        Parse HTML content.

        Args:
            url: The URL of the page, used to resolve relative links
            html_content: Raw HTML content

        Returns:
            ParsedPage with links in document order, without duplicates
        """
        soup = BeautifulSoup(html_content, 'lxml')
        base_url = self._get_base_url(soup, url)

        page = ParsedPage(url=url)

        title_tag = soup.find('title')
        if title_tag:
            page.title = ' '.join(title_tag.get_text().split())

        canonical = soup.find('link', attrs={'rel': 'canonical'})
        if canonical and canonical.get('href'):
            page.canonical_url = urljoin(base_url, canonical['href'])

        page.links = self._extract_links(soup, base_url)

        self.logger.debug(f"Parsed {url}: {len(page.links)} links")
        return page

    def _get_base_url(self, soup: BeautifulSoup, url: str) -> str:
        """Honor a <base href> element when present."""
        base_tag = soup.find('base', href=True)
        if base_tag:
            return urljoin(url, base_tag['href'].strip())
        return url

    def _extract_links(self, soup: BeautifulSoup, base_url: str) -> List[str]:
        """Extract and normalize links."""
        links = []
        seen = set()

        for link in soup.find_all('a', href=True):
            href = link['href'].strip()
            if not href or href.startswith('#'):
                continue

            absolute_url = urljoin(base_url, href)
            normalized_url = self._normalize_url(absolute_url)

            if normalized_url not in seen and self._is_valid_url(normalized_url):
                seen.add(normalized_url)
                links.append(normalized_url)

        return links

    def _normalize_url(self, url: str) -> str:
        """Drop the fragment and lower-case the host."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return url

        return urlunparse((
            parsed.scheme,
            parsed.netloc.lower(),
            parsed.path,
            parsed.params,
            parsed.query,
            ''  # Remove fragment
        ))

    def _is_valid_url(self, url: str) -> bool:
        """Check if URL is worth crawling."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return False

        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            return False

        return not parsed.path.lower().endswith(SKIP_EXTENSIONS)

"""
Web page parser for extracting links and text.
"""

import re
import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse, urlunparse
from dataclasses import dataclass, field
from bs4 import BeautifulSoup, Comment


@dataclass
class ParsedContent:
    """Container for parsed web page content."""
    url: str
    links: List[str] = field(default_factory=list)
    text: str = ""
    title: Optional[str] = None
    meta_description: Optional[str] = None
    language: Optional[str] = None
    canonical_url: Optional[str] = None
    word_count: int = 0


class ContentParser:
    """
    Parses HTML content to extract absolute links and visible text.
    Malformed hyperlinks are dropped rather than reported.
    """

    ignored_href_prefixes = ('#', 'javascript:', 'mailto:', 'tel:', 'data:')

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.whitespace_pattern = re.compile(r'\s+')

    def extract(self, html_content: str, base_url: str) -> ParsedContent:
        """
        Parse HTML content.

        Args:
            html_content: Raw HTML content
            base_url: URL the content was fetched from, used to resolve relative links

        Returns:
            ParsedContent object with extracted links and text
        """
        try:
            soup = BeautifulSoup(html_content, 'lxml')
        except Exception as e:
            self.logger.error(f"Error parsing content from {base_url}: {e}")
            return ParsedContent(url=base_url)

        parsed_content = ParsedContent(url=base_url)

        # Links first: the text pass below removes elements from the tree
        self._extract_links(soup, parsed_content, base_url)
        self._extract_metadata(soup, parsed_content, base_url)
        self._extract_text(soup, parsed_content)

        self.logger.debug(f"Parsed content from {base_url}: {parsed_content.word_count} words, "
                          f"{len(parsed_content.links)} links")
        return parsed_content

    def _extract_links(self, soup: BeautifulSoup, parsed_content: ParsedContent, base_url: str):
        """Resolve and normalize links, keeping document order."""
        links = {}

        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.lower().startswith(self.ignored_href_prefixes):
                continue

            normalized_url = self._resolve(base_url, href)
            if normalized_url:
                links.setdefault(normalized_url, None)

        parsed_content.links = list(links)

    def _resolve(self, base_url: str, href: str) -> Optional[str]:
        """Absolute URL without fragment, or None if the href is malformed."""
        try:
            parsed = urlparse(urljoin(base_url, href))
            if not parsed.scheme or not parsed.netloc:
                return None
            # Accessing .port validates the netloc
            parsed.port
            return urlunparse((
                parsed.scheme.lower(),
                parsed.netloc.lower(),
                parsed.path,
                parsed.params,
                parsed.query,
                ''
            ))
        except ValueError:
            return None

    def _extract_metadata(self, soup: BeautifulSoup, parsed_content: ParsedContent, base_url: str):
        title_tag = soup.find('title')
        if title_tag:
            parsed_content.title = self._clean_text(title_tag.get_text())

        meta_desc = soup.find('meta', attrs={'name': 'description'}) or \
            soup.find('meta', attrs={'property': 'og:description'})
        if meta_desc:
            parsed_content.meta_description = self._clean_text(meta_desc.get('content', ''))

        html_tag = soup.find('html')
        if html_tag:
            parsed_content.language = html_tag.get('lang') or html_tag.get('xml:lang')

        canonical = soup.find('link', attrs={'rel': 'canonical'})
        if canonical and canonical.get('href'):
            parsed_content.canonical_url = self._resolve(base_url, canonical['href'].strip())

    def _extract_text(self, soup: BeautifulSoup, parsed_content: ParsedContent):
        """Extract visible text content."""
        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        content_element = soup.find('body') or soup
        parsed_content.text = self._clean_text(content_element.get_text(separator=' ', strip=True))
        parsed_content.word_count = len(parsed_content.text.split())

    def _clean_text(self, text: str) -> str:
        if not text:
            return ""
        return self.whitespace_pattern.sub(' ', text.strip())

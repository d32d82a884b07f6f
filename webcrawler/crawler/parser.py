"""
Web page parser for extracting same-host links.
"""

import logging
from typing import List
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .content import Content, normalize_url
from ..errors import InvalidAddress, ParseError


class ContentParser:
    """
    Extracts hyperlinks from fetched pages and keeps the ones on the page's host.
    """

    # Content types that can carry anchors
    MARKUP_TYPES = (
        'text/html',
        'application/xhtml+xml',
        'text/xml',
        'application/xml',
    )
    FOLLOWED_SCHEMES = ('http', 'https')

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract_links(self, body: bytes) -> List[str]:
        """
        Collect href values of anchor tags in document order, duplicates included.

        Raises:
            ParseError: if the body cannot be tokenized
        """
        if not body:
            return []
        try:
            soup = BeautifulSoup(body, self.features)
        except Exception as e:
            raise ParseError(f"could not tokenize body: {e}") from e
        return [anchor['href'] for anchor in soup.find_all('a', href=True)]

    def parse(self, content: Content):
        """
        Populate content.children with the normalized same-host links of its body.

        Links without a host are resolved against the page, links to another
        host are dropped and scheme-relative links take the page's scheme.
        """
        if not self._is_markup(content.content_type):
            self.logger.debug(f"Skipping link extraction for {content.address} ({content.content_type})")
            return

        for link in self.extract_links(content.body):
            link = link.strip()
            if not link or link.startswith('#'):
                continue

            try:
                normalized = normalize_url(link)
            except InvalidAddress:
                continue

            parsed = urlsplit(normalized)
            if not parsed.netloc:
                try:
                    normalized = normalize_url(urljoin(content.address, link))
                except (InvalidAddress, ValueError):
                    continue
            elif parsed.hostname != content.hostname:
                continue
            elif not parsed.scheme:
                normalized = normalize_url(f"{content.scheme}:{normalized}")

            if urlsplit(normalized).scheme not in self.FOLLOWED_SCHEMES:
                continue

            content.children.add(normalized)

        self.logger.debug(f"Parsed {content.address}: {len(content.children)} links")

    def _is_markup(self, content_type: str) -> bool:
        """Check if content type can hold links. Unknown types are parsed."""
        if not content_type:
            return True
        content_type = content_type.lower()
        return any(markup_type in content_type for markup_type in self.MARKUP_TYPES)

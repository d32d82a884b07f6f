"""
In-memory content store for crawled pages.
Deduplicates by address and by body hash.
"""

import logging
import threading
from typing import Dict, List, Set

from ..crawler.content import Content
from ..errors import DuplicateAddress, DuplicateContent, UnknownAddress


class ContentStore:
    """
    Address to artifact cache plus the set of body hashes already stored.

    Every public operation holds the store lock for its whole duration, so
    compound checks such as is_repeated_content are atomic.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._cache: Dict[str, Content] = {}
        self._checksums: Set[str] = set()
        # Only kept for introspection, never consulted by add()
        self._url_to_checksum: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, content: Content):
        """
        Store new content.

        Raises:
            DuplicateAddress: the address is already stored
            DuplicateContent: another address already has the same body
        """
        with self._lock:
            if content.address in self._cache:
                raise DuplicateAddress(f"url exists already [{content.address}]")
            if content.body_hash in self._checksums:
                raise DuplicateContent(f"content exists already [{content.address}]")
            self._cache[content.address] = content
            self._checksums.add(content.body_hash)
        self.logger.debug(f"Stored content: {content.address}")

    def update(self, content: Content):
        with self._lock:
            if content.address not in self._cache:
                raise UnknownAddress(f"cannot update unknown content [{content.address}]")
            self._cache[content.address] = content

    def get(self, address: str) -> Content:
        with self._lock:
            try:
                return self._cache[address]
            except KeyError:
                raise UnknownAddress(f"cannot get unknown content [{address}]") from None

    def all(self) -> List[Content]:
        """All stored content, in no particular order."""
        with self._lock:
            return list(self._cache.values())

    def is_repeated_content(self, content: Content) -> bool:
        """Return True if the body hash is already stored, remembering the address if so."""
        with self._lock:
            if content.body_hash not in self._checksums:
                return False
            self._url_to_checksum[content.address] = content.body_hash
            return True

    def repeated_hashes(self) -> Dict[str, str]:
        """Addresses seen with content that was already stored, and its hash."""
        with self._lock:
            return dict(self._url_to_checksum)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                'total_stored': len(self._cache),
                'total_checksums': len(self._checksums),
                'repeated_content': len(self._url_to_checksum),
                'total_size_bytes': sum(len(c.body) for c in self._cache.values())
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

"""
Crawl target representation: a normalized address and the artifact fetched for it.
"""

import hashlib
from dataclasses import dataclass, field
from typing import List, Optional, Set
from urllib.parse import SplitResult, urlsplit, urlunsplit

from ..errors import InvalidAddress


def normalize_url(raw: str) -> str:
    """
    Normalize an address.

    The empty path becomes "/", the fragment is dropped and the scheme and
    network location are lower-cased. Applying it twice gives the same result.

    Raises:
        InvalidAddress: if the input cannot be parsed as a URI
    """
    if not isinstance(raw, str):
        raise InvalidAddress(f"address must be a string, got {type(raw).__name__}")

    try:
        parsed = urlsplit(raw.strip())
        # Accessing the port validates it
        parsed.port
    except ValueError as e:
        raise InvalidAddress(f"could not parse url [{raw}]: {e}") from e

    path = parsed.path or '/'
    if not parsed.netloc and path.startswith('//'):
        # Would read back as a network location
        path = '/' + path.lstrip('/')

    return urlunsplit((
        parsed.scheme,
        parsed.netloc.lower(),
        path,
        parsed.query,
        ''  # Remove fragment
    ))


def hash_body(body: bytes) -> str:
    """Create a SHA-256 checksum for a body."""
    return hashlib.sha256(body).hexdigest()


@dataclass
class Content:
    """
    An address and everything the crawler learns about it.

    Created when an address is scheduled, filled in by the fetcher (body,
    hash, content type) and the parser (children). Not mutated once stored.
    """
    address: str = ""
    body: bytes = b""
    body_hash: Optional[str] = None
    content_type: str = ""
    children: Set[str] = field(default_factory=set)

    @classmethod
    def from_url(cls, raw: str) -> 'Content':
        """Create an empty artifact for a normalized address."""
        return cls(address=normalize_url(raw))

    @classmethod
    def with_body(cls, raw: str, body: bytes) -> 'Content':
        """Create an artifact for a normalized address with its known body."""
        content = cls.from_url(raw)
        content.set_body(body)
        return content

    def set_body(self, body: bytes):
        self.body = body
        self.body_hash = hash_body(body)

    @property
    def parts(self) -> SplitResult:
        return urlsplit(self.address)

    @property
    def scheme(self) -> str:
        return self.parts.scheme

    @property
    def host(self) -> str:
        """Network location, port included."""
        return self.parts.netloc

    @property
    def hostname(self) -> str:
        return self.parts.hostname or ""

    @property
    def path(self) -> str:
        return self.parts.path

    def children_list(self) -> List[str]:
        """Children as a list, sorted so output is stable."""
        return sorted(self.children)

    def __str__(self) -> str:
        return self.address

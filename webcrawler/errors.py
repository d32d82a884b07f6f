"""
Exception hierarchy for the web crawler system.
"""

from typing import Optional


class CrawlerError(Exception):
    """Base exception for crawler operations."""
    pass


class InvalidAddress(CrawlerError):
    """Raised when an address cannot be parsed as a URI."""
    pass


class FetchError(CrawlerError):
    """Base exception for fetch failures."""
    pass


class RequestError(FetchError):
    """Raised when a request could not be executed."""
    pass


class BadStatus(FetchError):
    """Raised when the response status is not 2xx."""

    def __init__(self, status: int, url: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(f"response status {status} for {url}")


class StorageError(CrawlerError):
    """Base exception for content store operations."""
    pass


class DuplicateAddress(StorageError):
    """Raised when adding content whose address is already stored."""
    pass


class DuplicateContent(StorageError):
    """Raised when adding content whose body hash is already stored."""
    pass


class UnknownAddress(StorageError):
    """Raised when updating or getting content that was never stored."""
    pass


class DiscoveryError(CrawlerError):
    """Base exception for discovery rejections."""
    pass


class AlreadyDiscovered(DiscoveryError):
    pass


class MissingScheme(DiscoveryError):
    pass


class ParseError(CrawlerError):
    """Raised when links cannot be extracted from a body."""
    pass


class DispatchError(CrawlerError):
    """Raised when new urls cannot be handed to the frontier."""
    pass

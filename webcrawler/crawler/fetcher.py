"""
Web page fetcher with bounded retries and exponential backoff.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from .content import Content
from .deadline import Deadline
from ..errors import BadStatus, FetchError, RequestError


class FetchOutcome(Enum):
    """How a fetch ended when it did not raise."""
    OK = "ok"
    # The crawl deadline expired first; the body was never set
    TIMED_OUT = "timed_out"


class WebFetcher:
    """
    Fetches one address at a time into a Content object.

    A fetch makes up to `retries` attempts. When attempt i (counting from 0)
    fails and is not the last one, the fetcher waits
    backoff * backoff_multiplier ** i seconds before the next attempt.
    Running into the crawl deadline is not an error: the fetch is abandoned
    and reported as FetchOutcome.TIMED_OUT.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30, retries: int = 1,
                 backoff: float = 0.5, backoff_multiplier: float = 2,
                 max_concurrent_requests: int = 0):
        if retries < 1:
            raise ValueError("retries must be at least 1")

        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.retries = retries
        self.backoff = backoff
        self.backoff_multiplier = backoff_multiplier
        self.max_concurrent_requests = max_concurrent_requests

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = (asyncio.Semaphore(max_concurrent_requests)
                          if max_concurrent_requests > 0 else None)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'retries': 0,
            'timed_out': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            headers = {'User-Agent': self.user_agent}
            self.session = aiohttp.ClientSession(
                headers=headers,
                connector=aiohttp.TCPConnector(limit=0, ttl_dns_cache=300)
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, content: Content, deadline: Deadline) -> FetchOutcome:
        """
        Fetch content.address and store body, hash and content type on content.

        Args:
            content: The artifact to fill in
            deadline: The crawl deadline

        Returns:
            FetchOutcome.OK, or FetchOutcome.TIMED_OUT if the deadline expired

        Raises:
            RequestError: the request could not be executed
            BadStatus: the last attempt got a non-2xx response
        """
        if self.session is None:
            await self.start()

        for attempt in range(self.retries):
            try:
                outcome = await self._fetch_once(content, deadline)
            except FetchError as e:
                self.stats['failed_requests'] += 1
                if attempt >= self.retries - 1:
                    raise

                delay = self.backoff * (self.backoff_multiplier ** attempt)
                self.logger.info(f"Attempt {attempt + 1} for url [{content.address}] failed "
                                 f"due to {e}, retrying in {delay:.2f}s")
                self.stats['retries'] += 1
                if not await self._sleep(delay, deadline):
                    return self._timed_out(content)
                continue

            if outcome is FetchOutcome.TIMED_OUT:
                return self._timed_out(content)
            self.stats['successful_requests'] += 1
            return outcome

    async def _fetch_once(self, content: Content, deadline: Deadline) -> FetchOutcome:
        """Make a single request."""
        async with self._limit():
            budget = deadline.remaining()
            if budget <= 0:
                return FetchOutcome.TIMED_OUT

            # When the deadline is the tighter bound, its timeout ends the fetch
            deadline_bound = budget < self.request_timeout
            timeout = ClientTimeout(total=min(self.request_timeout, budget))

            self.stats['total_requests'] += 1
            try:
                async with self.session.get(content.address, timeout=timeout) as response:
                    if not 200 <= response.status < 300:
                        raise BadStatus(response.status, content.address)
                    body = await response.read()
                    content_type = response.headers.get('Content-Type', '')

            except asyncio.TimeoutError:
                if deadline_bound or deadline.expired():
                    return FetchOutcome.TIMED_OUT
                raise RequestError(f"Request timeout for {content.address}")

            except ClientError as e:
                raise RequestError(f"Client error for {content.address}: {e}") from e

            except ValueError as e:
                # yarl rejects some addresses before aiohttp sees them
                raise RequestError(f"Invalid url {content.address}: {e}") from e

        content.set_body(body)
        content.content_type = content_type
        self.stats['total_bytes_downloaded'] += len(body)
        self.logger.debug(f"Fetched {content.address}: {response.status} ({len(body)} bytes)")
        return FetchOutcome.OK

    @asynccontextmanager
    async def _limit(self):
        if self.semaphore is None:
            yield
            return
        async with self.semaphore:
            yield

    async def _sleep(self, delay: float, deadline: Deadline) -> bool:
        """Sleep for delay seconds, returning False if the deadline cut it short."""
        remaining = deadline.remaining()
        if delay >= remaining:
            await asyncio.sleep(remaining)
            return False
        await asyncio.sleep(delay)
        return True

    def _timed_out(self, content: Content) -> FetchOutcome:
        self.stats['timed_out'] += 1
        self.logger.debug(f"Deadline exceeded while fetching {content.address}")
        return FetchOutcome.TIMED_OUT

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

"""
Crawl-wide deadline shared by every fetch and backoff sleep.
"""

import asyncio
from typing import Optional


class Deadline:
    """A point in event loop time after which pending work is abandoned."""

    def __init__(self, timeout: float, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self.timeout = timeout
        self.expires_at = self._loop.time() + timeout

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self.expires_at - self._loop.time())

    def expired(self) -> bool:
        return self._loop.time() >= self.expires_at

    async def wait(self):
        """Sleep until the deadline expires."""
        await asyncio.sleep(self.remaining())

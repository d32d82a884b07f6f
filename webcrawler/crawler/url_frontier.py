"""
URL Frontier implementation for handing addresses to crawler workers.
Publishing is a rendezvous: a producer waits until a consumer has taken the address.
"""

import asyncio
import logging
from typing import AsyncIterator, Tuple


class URLFrontier:
    """
    Unbuffered hand-off of pending addresses.

    Any number of producers may publish and any number of consumers may
    receive; every published address is delivered to exactly one consumer.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._queue: "asyncio.Queue[Tuple[str, asyncio.Future]]" = asyncio.Queue()
        self._waiting = 0

    async def publish(self, address: str):
        """
        Publish an address and wait until a consumer receives it.

        This is the backpressure point of the crawler: producers cannot get
        ahead of the consumers.
        """
        received = asyncio.get_running_loop().create_future()
        self._waiting += 1
        try:
            await self._queue.put((address, received))
            await received
        finally:
            self._waiting -= 1
        self.logger.debug(f"Handed off URL: {address}")

    async def get(self) -> str:
        """Receive the next published address."""
        while True:
            address, received = await self._queue.get()
            if received.done():
                # The publisher gave up (cancelled) before anyone took it
                continue
            received.set_result(None)
            return address

    async def consume(self) -> AsyncIterator[str]:
        """Iterate over published addresses until the consumer is cancelled."""
        while True:
            yield await self.get()

    def pending(self) -> int:
        """Number of publishers still waiting for a consumer."""
        return self._waiting

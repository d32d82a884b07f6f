"""
Dispatcher that republishes newly found links to the URL frontier.
"""

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from .url_frontier import URLFrontier
from ..errors import DispatchError

if TYPE_CHECKING:
    from ..storage.events import EventLog


class Dispatcher:
    """
    Filters links through the event log and publishes the unseen ones.

    It never marks an address as discovered; that happens when the address
    goes through the discovery stage of its own pipeline.
    """

    def __init__(self, events: 'EventLog', frontier: URLFrontier,
                 on_dispatch: Optional[Callable[[int], None]] = None):
        self.events = events
        self.frontier = frontier
        # Called with 1 right before each publish so in-flight work is
        # counted before the consumer can finish it
        self.on_dispatch = on_dispatch
        self.logger = logging.getLogger(__name__)

    async def dispatch_new_urls(self, urls: Iterable[str]) -> int:
        """Publish urls that were never discovered. Returns how many were published."""
        new_urls = [url for url in urls if self.events.should_download(url)]

        for url in new_urls:
            if self.on_dispatch is not None:
                self.on_dispatch(1)
            try:
                await self.frontier.publish(url)
            except RuntimeError as e:
                raise DispatchError(f"could not publish [{url}]: {e}") from e

        if new_urls:
            self.logger.debug(f"Dispatched {len(new_urls)} new URLs")
        return len(new_urls)

"""
Crawler scheduler that coordinates crawling tasks and decides when a crawl is over.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from .content import Content
from .deadline import Deadline
from .dispatcher import Dispatcher
from .fetcher import FetchOutcome, WebFetcher
from .parser import ContentParser
from .url_frontier import URLFrontier
from ..errors import (
    AlreadyDiscovered, CrawlerError, DispatchError, DuplicateContent,
    FetchError, InvalidAddress, MissingScheme, ParseError, StorageError,
)
from ..storage.database import ContentStore
from ..storage.events import EventLog
from ..utils.config import CrawlerConfig
from ..utils.logger import get_crawler_logger
from ..utils.report import SitemapEntry, build_sitemap


class CrawlOutcome(Enum):
    """How a crawl ended."""
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


class InFlightTracker:
    """
    Counts pipeline tasks that have not finished yet.

    Callers add before a task can start and call done() exactly once when it
    exits. Reaching zero is signalled once and the counter stays there. All
    calls happen on the event loop thread, so each call is atomic.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._count = 0
        self._finished = asyncio.Event()

    @property
    def count(self) -> int:
        return self._count

    def add(self, n: int = 1):
        if n < 0:
            raise ValueError("use done() to decrement the tracker")
        if self._finished.is_set():
            self.logger.warning(f"Ignoring {n} tasks added after the crawl finished")
            return
        self._count += n

    def done(self):
        if self._count <= 0:
            self.logger.warning("done() called with no tasks in flight")
            return
        self._count -= 1
        if self._count == 0:
            self._finished.set()

    def finished(self) -> bool:
        return self._finished.is_set()

    async def wait(self):
        await self._finished.wait()


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    urls_processed: int = 0
    pages_stored: int = 0
    errors: int = 0
    duplicates_skipped: int = 0
    timed_out: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.pages_stored / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlerScheduler:
    """
    Drives one crawl of a single host.

    A fixed number of workers take addresses from the frontier and start one
    pipeline task per address without waiting for it, so the worker count
    bounds how fast addresses are dequeued, not how many are being fetched.
    Each pipeline runs discovery, fetch, content dedup, parse, persist and
    dispatch in order and stops at the first stage that fails.
    """

    STATS_INTERVAL = 30

    def __init__(self, config: CrawlerConfig,
                 frontier: Optional[URLFrontier] = None,
                 storage: Optional[ContentStore] = None,
                 events: Optional[EventLog] = None,
                 fetcher: Optional[WebFetcher] = None,
                 parser: Optional[ContentParser] = None):
        if config.workers < 1:
            raise ValueError("workers must be at least 1")

        self.config = config
        self.logger = logging.getLogger(__name__)
        self.url_logger = get_crawler_logger(__name__, component='pipeline')

        # Shared state, owned for the lifetime of one crawl
        self.frontier = frontier or URLFrontier()
        self.storage = storage or ContentStore()
        self.events = events or EventLog()
        self.tracker = InFlightTracker()

        # Components
        self.fetcher = fetcher or WebFetcher(
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            retries=config.retries,
            backoff=config.backoff,
            backoff_multiplier=config.backoff_multiplier,
            max_concurrent_requests=config.max_concurrent_requests
        )
        self.parser = parser or ContentParser()
        self.dispatcher = Dispatcher(self.events, self.frontier, on_dispatch=self._count_dispatched)

        # Crawl state
        self.stats = CrawlStats(start_time=time.time())
        self.deadline: Optional[Deadline] = None
        self.is_running = False
        self.workers: List[asyncio.Task] = []
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Start the HTTP session."""
        await self.fetcher.start()
        self.logger.info("Crawler scheduler initialized")

    async def start_crawling(self, seed: Optional[str] = None) -> CrawlOutcome:
        """
        Crawl from seed until every reachable address is processed or the deadline passes.

        Args:
            seed: Seed address, defaults to the configured seed_url

        Returns:
            CrawlOutcome.COMPLETED or CrawlOutcome.TIMED_OUT
        """
        seed = seed or self.config.seed_url
        if not seed:
            raise ValueError("a seed url is required")
        if self.is_running:
            raise RuntimeError("Crawler is already running")

        self.is_running = True
        self.stats = CrawlStats(start_time=time.time())
        self.tracker = InFlightTracker()
        self.deadline = Deadline(self.config.timeout)
        await self.fetcher.start()

        self.workers = [
            asyncio.create_task(self._worker(f"worker-{i}"))
            for i in range(self.config.workers)
        ]
        stats_task = asyncio.create_task(self._stats_reporter())
        self.logger.info(f"Started crawling {seed} with {self.config.workers} workers")

        try:
            outcome = await self._wait_for_completion(seed)
        finally:
            self.is_running = False
            stats_task.cancel()
            await self._cleanup_workers()
            await asyncio.gather(stats_task, return_exceptions=True)

        if outcome is CrawlOutcome.COMPLETED:
            self.logger.info("All urls were processed")
        else:
            self.logger.warning(f"Timeout of {self.config.timeout}s exceeded, "
                                f"{self.tracker.count} tasks still in flight")
        self._log_final_stats(outcome)
        return outcome

    async def _wait_for_completion(self, seed: str) -> CrawlOutcome:
        """Publish the seed, then wait for the tracker to reach zero or the deadline."""
        # Decremented when the seed's pipeline finishes
        self.tracker.add(1)

        completion = asyncio.create_task(self._publish_and_wait(seed))
        expiry = asyncio.create_task(self.deadline.wait())

        try:
            done, _ = await asyncio.wait(
                [completion, expiry],
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (completion, expiry):
                task.cancel()
            await asyncio.gather(completion, expiry, return_exceptions=True)

        if completion not in done:
            return CrawlOutcome.TIMED_OUT
        completion.result()

        # Fetches abandoned at the deadline drain the tracker too, but the
        # host was not exhausted
        if self.stats.timed_out > 0 or self.deadline.expired():
            return CrawlOutcome.TIMED_OUT
        return CrawlOutcome.COMPLETED

    async def _publish_and_wait(self, seed: str):
        await self.frontier.publish(seed)
        await self.tracker.wait()

    async def _worker(self, worker_id: str):
        """Worker coroutine that starts a pipeline task for every address it receives."""
        self.logger.debug(f"Worker {worker_id} started")
        try:
            async for url in self.frontier.consume():
                self._spawn(url)
        except asyncio.CancelledError:
            self.logger.debug(f"Worker {worker_id} cancelled")

    def _count_dispatched(self, n: int):
        self.tracker.add(n)

    def _spawn(self, url: str):
        task = asyncio.create_task(self._process_url(url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_url(self, url: str):
        """Run the pipeline for one address."""
        # The tracker was incremented for this task before it was spawned
        try:
            try:
                content = Content.from_url(url)
            except InvalidAddress as e:
                self.logger.warning(f"Error parsing url [{url}]: {e}")
                content = Content()

            self.stats.urls_processed += 1

            stages = (
                self._discovery,
                self._fetch,
                self._skip_repeated,
                self._parse,
                self._store,
                self._dispatch,
            )
            for stage in stages:
                if not await stage(content):
                    return

        except CrawlerError as e:
            self.url_logger.log_url_event(logging.INFO, url, str(e))

        except Exception as e:
            self.stats.errors += 1
            self.logger.error(f"Error processing {url}: {e}", exc_info=True)

        finally:
            self.tracker.done()

    async def _discovery(self, content: Content) -> bool:
        if not content.scheme:
            for scheme in ('https', 'http'):
                self.tracker.add(1)
                self._spawn(f"{scheme}://{content.address}")

            self.events.log_discovery(content.address, False)
            raise MissingScheme(f"url missing scheme [{content.address}], trying https and http")

        if not self.events.should_download(content.address):
            self.events.log_discovery(content.address, False)
            raise AlreadyDiscovered(f"repeated url [{content.address}]")

        self.events.log_discovery(content.address, True)
        return True

    async def _fetch(self, content: Content) -> bool:
        try:
            outcome = await self.fetcher.fetch(content, self.deadline)
        except FetchError as e:
            self.events.log_fetch(content.address, False)
            self.stats.errors += 1
            raise FetchError(f"fetch failed for [{content.address}]: {e}") from e

        self.events.log_fetch(content.address, True)

        if outcome is FetchOutcome.TIMED_OUT:
            # Not an error, but there is no body to parse or store
            self.stats.timed_out += 1
            self.url_logger.log_url_event(logging.INFO, content.address,
                                          "Deadline exceeded before the body arrived")
            return False
        return True

    async def _skip_repeated(self, content: Content) -> bool:
        if self.storage.is_repeated_content(content):
            self.stats.duplicates_skipped += 1
            raise DuplicateContent(f"repeated content for url [{content.address}]")
        return True

    async def _parse(self, content: Content) -> bool:
        try:
            self.parser.parse(content)
        except ParseError as e:
            self.events.log_parse(content.address, False, 0)
            raise ParseError(f"parse failed for [{content.address}]: {e}") from e

        self.events.log_parse(content.address, True, len(content.children))
        return True

    async def _store(self, content: Content) -> bool:
        try:
            self.storage.add(content)
        except StorageError:
            self.events.log_persist(content.address, False)
            raise

        self.events.log_persist(content.address, True)
        self.stats.pages_stored += 1
        return True

    async def _dispatch(self, content: Content) -> bool:
        try:
            dispatched = await self.dispatcher.dispatch_new_urls(content.children_list())
        except DispatchError:
            self.events.log_dispatch(content.address, False, 0)
            raise

        self.events.log_dispatch(content.address, True, dispatched)
        return True

    async def _stats_reporter(self):
        """Periodically log crawl statistics."""
        while True:
            await asyncio.sleep(self.STATS_INTERVAL)
            self._log_current_stats()

    def _log_current_stats(self):
        self.logger.info(
            f"Crawl Progress: "
            f"Processed={self.stats.urls_processed}, "
            f"Stored={self.stats.pages_stored}, "
            f"InFlight={self.tracker.count}, "
            f"Waiting={self.frontier.pending()}, "
            f"Errors={self.stats.errors}, "
            f"Duplicates={self.stats.duplicates_skipped}, "
            f"Rate={self.stats.pages_per_minute:.1f} pages/min"
        )

    def _log_final_stats(self, outcome: CrawlOutcome):
        self.logger.info(f"=== CRAWL {outcome.value.upper()} ===")
        self.logger.info(f"URLs processed: {self.stats.urls_processed}")
        self.logger.info(f"Pages stored: {self.stats.pages_stored}")
        self.logger.info(f"Duplicates skipped: {self.stats.duplicates_skipped}")
        self.logger.info(f"Fetches cut by the deadline: {self.stats.timed_out}")
        self.logger.info(f"Errors: {self.stats.errors}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")
        self.logger.info(f"Event stats: {self.events.get_stats()}")
        self.logger.info(f"Storage stats: {self.storage.get_stats()}")

    async def _cleanup_workers(self):
        """Cancel and cleanup worker tasks."""
        if self.workers:
            for worker in self.workers:
                if not worker.done():
                    worker.cancel()

            await asyncio.gather(*self.workers, return_exceptions=True)
            self.workers.clear()

    async def close(self):
        """Cancel leftover pipeline tasks and close the HTTP session."""
        await self._cleanup_workers()

        leftover = list(self._tasks)
        for task in leftover:
            task.cancel()
        if leftover:
            await asyncio.gather(*leftover, return_exceptions=True)
            self.logger.info(f"Cancelled {len(leftover)} unfinished pipeline tasks")

        await self.fetcher.close()
        self.logger.info("Crawler scheduler closed")

    def get_sitemap(self) -> List[SitemapEntry]:
        """Snapshot of every stored page, ordered by address."""
        return build_sitemap(self.storage.all())

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        return {
            'urls_processed': self.stats.urls_processed,
            'pages_stored': self.stats.pages_stored,
            'errors': self.stats.errors,
            'duplicates_skipped': self.stats.duplicates_skipped,
            'timed_out': self.stats.timed_out,
            'elapsed_time': self.stats.elapsed_time,
            'in_flight': self.tracker.count,
            'is_running': self.is_running
        }

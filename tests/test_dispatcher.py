import asyncio

import pytest

from webcrawler.crawler.dispatcher import Dispatcher
from webcrawler.crawler.url_frontier import URLFrontier
from webcrawler.storage.events import EventLog, EventType


pytestmark = pytest.mark.asyncio


async def collect(frontier: URLFrontier, received: list):
    async for address in frontier.consume():
        received.append(address)


async def test_only_undiscovered_urls_are_published():
    events = EventLog()
    events.log_discovery("http://host/seen", True)
    events.log_discovery("http://host/failed", False)
    events.log_fetch("http://host/fetched-only", True)

    frontier = URLFrontier()
    counted = []
    dispatcher = Dispatcher(events, frontier, on_dispatch=counted.append)

    received = []
    consumer = asyncio.create_task(collect(frontier, received))

    dispatched = await asyncio.wait_for(dispatcher.dispatch_new_urls([
        "http://host/seen",
        "http://host/failed",
        "http://host/fetched-only",
        "http://host/new",
    ]), 1)

    consumer.cancel()
    await asyncio.gather(consumer, return_exceptions=True)

    assert dispatched == 2
    assert sorted(received) == ["http://host/fetched-only", "http://host/new"]
    assert counted == [1, 1]


async def test_dispatch_does_not_mark_discovery():
    events = EventLog()
    frontier = URLFrontier()
    dispatcher = Dispatcher(events, frontier)

    received = []
    consumer = asyncio.create_task(collect(frontier, received))
    await asyncio.wait_for(dispatcher.dispatch_new_urls(["http://host/a"]), 1)
    consumer.cancel()
    await asyncio.gather(consumer, return_exceptions=True)

    assert events.should_download("http://host/a")
    assert all(
        event.event_type is not EventType.DISCOVERY
        for event in events.get_report().get("http://host/a", [])
    )


async def test_nothing_to_dispatch():
    dispatcher = Dispatcher(EventLog(), URLFrontier())
    assert await dispatcher.dispatch_new_urls([]) == 0

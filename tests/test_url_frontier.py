import asyncio

import pytest

from webcrawler.crawler.url_frontier import URLFrontier


pytestmark = pytest.mark.asyncio


async def test_publish_waits_for_a_consumer():
    frontier = URLFrontier()
    publisher = asyncio.create_task(frontier.publish("value"))

    await asyncio.sleep(0.05)
    assert not publisher.done()
    assert frontier.pending() == 1

    assert await asyncio.wait_for(frontier.get(), 1) == "value"
    await asyncio.wait_for(publisher, 1)
    assert frontier.pending() == 0


async def test_every_address_goes_to_exactly_one_consumer():
    frontier = URLFrontier()
    received = []

    async def consumer():
        async for address in frontier.consume():
            received.append(address)

    consumers = [asyncio.create_task(consumer()) for _ in range(3)]
    values = [f"value{i}" for i in range(20)]
    await asyncio.wait_for(asyncio.gather(*(frontier.publish(v) for v in values)), 3)

    for task in consumers:
        task.cancel()
    await asyncio.gather(*consumers, return_exceptions=True)

    assert sorted(received) == sorted(values)


async def test_cancelled_publish_is_not_delivered():
    frontier = URLFrontier()
    abandoned = asyncio.create_task(frontier.publish("abandoned"))
    await asyncio.sleep(0.01)
    abandoned.cancel()
    await asyncio.gather(abandoned, return_exceptions=True)

    publisher = asyncio.create_task(frontier.publish("kept"))
    assert await asyncio.wait_for(frontier.get(), 1) == "kept"
    await publisher

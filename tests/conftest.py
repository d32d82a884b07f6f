import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from webcrawler.utils.config import CrawlerConfig


@dataclass
class Page:
    body: str = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    delay: float = 0.0


class Site:
    """A small website served by aiohttp for the duration of a test."""

    def __init__(self):
        self.pages: Dict[str, Page] = {}
        self.handlers: Dict[str, Callable[[web.Request], Awaitable[web.Response]]] = {}
        self.hits: List[tuple] = []
        # Slow pages stop waiting once this is set, so the server can shut down
        self.release = asyncio.Event()
        self.server: Optional[TestServer] = None

    @property
    def base(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    @property
    def host(self) -> str:
        return f"{self.server.host}:{self.server.port}"

    def url(self, path: str = "/") -> str:
        return f"{self.base}{path}"

    def add(self, path: str, body: str = "", **kwargs) -> Page:
        page = Page(body=body, **kwargs)
        self.pages[path] = page
        return page

    def hit_count(self, path: str) -> int:
        return sum(1 for hit_path, _ in self.hits if hit_path == path)

    def hit_times(self, path: str) -> List[float]:
        return [when for hit_path, when in self.hits if hit_path == path]

    async def handle(self, request: web.Request) -> web.Response:
        self.hits.append((request.path_qs, time.monotonic()))

        if request.path_qs in self.handlers:
            return await self.handlers[request.path_qs](request)

        page = self.pages.get(request.path_qs)
        if page is None:
            return web.Response(status=404, text="not found")

        if page.delay:
            try:
                await asyncio.wait_for(self.release.wait(), page.delay)
            except asyncio.TimeoutError:
                pass

        return web.Response(
            status=page.status,
            body=page.body.encode('utf-8'),
            headers={'Content-Type': page.content_type}
        )


@pytest_asyncio.fixture
async def site():
    site = Site()
    app = web.Application()
    app.router.add_get('/{tail:.*}', site.handle)

    site.server = TestServer(app)
    await site.server.start_server()
    try:
        yield site
    finally:
        site.release.set()
        await site.server.close()


def sample_website(site: Site):
    """
    Four pages: the root links to page1-3, page1 links back to the root and
    to page2 and page3, page2 links to page1 and page3 links nowhere. Every
    page also links to another host, which must never be followed.
    """
    base = site.base
    site.add("/", f"""
        <!DOCTYPE html>
        <html>
        <head><title>Home</title></head>
        <body>
            <a href="/page1">Relative link to Page 1</a>
            <a href="{base}/page1">Absolute link to Page 1</a>
            <a href="/page2">Relative link to Page 2</a>
            <a href="{base}/page2">Absolute link to Page 2</a>
            <a href="/page3">Relative link to Page 3</a>
            <a href="{base}/page3#top">Absolute link to Page 3</a>
            <a href="http://link-to-somewhere-else.com/">Link to somewhere else</a>
        </body>
        </html>""")
    site.add("/page1", f"""
        <!DOCTYPE html>
        <html>
        <head><title>Page 1</title></head>
        <body>
            <a href="/">Relative link to Home</a>
            <a href="{base}/">Absolute link to Home</a>
            <a href="/page2">Relative link to Page 2</a>
            <a href="{base}/page2">Absolute link to Page 2</a>
            <a href="/page3">Relative link to Page 3</a>
            <a href="{base}/page3">Absolute link to Page 3</a>
            <a href="http://link-to-somewhere-else.com/">Link to somewhere else</a>
        </body>
        </html>""")
    site.add("/page2", f"""
        <!DOCTYPE html>
        <html>
        <head><title>Page 2</title></head>
        <body>
            <a href="/page1">Relative link to Page 1</a>
            <a href="{base}/page1">Absolute link to Page 1</a>
            <a href="http://link-to-somewhere-else.com/">Link to somewhere else</a>
        </body>
        </html>""")
    site.add("/page3", """
        <!DOCTYPE html>
        <html>
        <head><title>Page 3</title></head>
        <body>
            <a href="http://link-to-somewhere-else.com/">Link to somewhere else</a>
        </body>
        </html>""")

    return {
        site.url("/"): [site.url("/page1"), site.url("/page2"), site.url("/page3")],
        site.url("/page1"): [site.url("/"), site.url("/page2"), site.url("/page3")],
        site.url("/page2"): [site.url("/page1")],
        site.url("/page3"): [],
    }


def crawler_config(**overrides) -> CrawlerConfig:
    values = dict(workers=3, retries=1, backoff=0.05, backoff_multiplier=2, timeout=10.0,
                  request_timeout=5.0)
    values.update(overrides)
    return CrawlerConfig(**values)

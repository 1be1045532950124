# File: tests/conftest.py
import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from site_mirror.config import MirrorConfig
from site_mirror.crawler.link_extractor import extract_page
from site_mirror.crawler.models import CrawlTarget, RenderedPage
from site_mirror.crawler.urls import origin_of
from site_mirror.errors import NavigationError
from site_mirror.logger import LOGGER_NAME

#: 1x1 transparent PNG
_PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture(autouse=True)
def project_log_capture(caplog):
    """
    Route the project logger straight into caplog, whether or not it propagates.
    """
    lg = logging.getLogger(LOGGER_NAME)
    handlers, propagate = list(lg.handlers), lg.propagate
    lg.addHandler(caplog.handler)
    lg.propagate = False
    yield caplog
    lg.handlers[:] = handlers
    lg.propagate = propagate


@pytest.fixture()
def png_bytes() -> bytes:
    return _PNG_BYTES


@pytest.fixture()
def mirror_config(tmp_path: Path, unused_tcp_port_factory) -> MirrorConfig:
    """
    Return a MirrorConfig writing into a temporary folder, with the no-JS renderer.
    """
    return MirrorConfig(
        output_dir=tmp_path / "scraped_website",
        host="127.0.0.1",
        port=unused_tcp_port_factory(),
        renderer="http",
        navigation_timeout=2.0,
        asset_timeout=2.0,
        scroll_delay=0,
    )


@pytest_asyncio.fixture
async def serve_app(unused_tcp_port_factory):
    """Start aiohttp apps on free ports; yields a starter returning the base URL."""
    runners = []

    async def _start(app: web.Application) -> str:
        port = unused_tcp_port_factory()
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{port}"

    yield _start
    for runner in runners:
        await runner.cleanup()


class FakeRenderer:
    """
    In-memory renderer: serves canned markup per normalized URL and records
    how many renders ran and how many overlapped.
    """

    def __init__(self, pages: Dict[str, str], delay: float = 0.01, fail: Iterable[str] = ()) -> None:
        self.pages = pages
        self.delay = delay
        self.fail = set(fail)
        self.calls: Counter = Counter()
        self.in_flight = 0
        self.peak = 0

    async def __aenter__(self) -> "FakeRenderer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def render(self, target: CrawlTarget, origin: Optional[str] = None) -> RenderedPage:
        self.calls[target.url] += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if target.url in self.fail or target.url not in self.pages:
                raise NavigationError(target.url, "Timeout 30000ms exceeded")
            return extract_page(target, target.url, self.pages[target.url], origin or origin_of(target))
        finally:
            self.in_flight -= 1


@pytest.fixture()
def fake_renderer():
    """Factory for :class:`FakeRenderer` instances."""
    return FakeRenderer

"""
Page renderers: turn a CrawlTarget into a RenderedPage.

``BrowserRenderer`` drives headless Chromium through Playwright so client
scripts run and lazy content loads; ``HttpRenderer`` only downloads the raw
markup and is meant for static sites.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from site_mirror.config import MirrorConfig
from site_mirror.crawler.link_extractor import extract_page
from site_mirror.crawler.models import CrawlTarget, RenderedPage
from site_mirror.crawler.urls import origin_of
from site_mirror.errors import NavigationError, ScrapeFailure
from site_mirror.logger import logger

__all__ = ("Renderer", "BrowserRenderer", "HttpRenderer", "create_renderer")


class Renderer(Protocol):
    async def __aenter__(self) -> "Renderer": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def render(self, target: CrawlTarget, origin: Optional[str] = None) -> RenderedPage: ...


_SCROLL_HEIGHT_JS = "() => document.body ? document.body.scrollHeight : 0"
_SCROLL_BY_JS = "(step) => window.scrollBy(0, step)"


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


class BrowserRenderer:
    """Renders pages in headless Chromium, one fresh browser context per page."""

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> BrowserRenderer:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
        except PlaywrightError as exc:
            await self.close()
            raise ScrapeFailure(f"browser engine failed to start: {exc}") from exc
        logger.debug("Chromium started (headless=%s)", self.config.headless)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def render(self, target: CrawlTarget, origin: Optional[str] = None) -> RenderedPage:
        if self._browser is None:
            raise RuntimeError("Browser not started")
        try:
            context = await self._browser.new_context(user_agent=self.config.user_agent)
        except PlaywrightError as exc:
            raise NavigationError(target.url, f"could not open a browser context: {_first_line(exc)}") from exc
        try:
            try:
                page = await context.new_page()
            except PlaywrightError as exc:
                raise NavigationError(target.url, f"could not open a page: {_first_line(exc)}") from exc
            try:
                await page.goto(
                    target.url,
                    wait_until="networkidle",
                    timeout=self.config.navigation_timeout * 1000,
                )
            except PlaywrightError as exc:
                raise NavigationError(target.url, _first_line(exc)) from exc
            await self._auto_scroll(page)
            try:
                html = await page.content()
            except PlaywrightError as exc:
                raise NavigationError(target.url, f"could not serialize document: {_first_line(exc)}") from exc
            final_url = page.url or target.url
        finally:
            await context.close()
        return extract_page(target, final_url, html, origin or origin_of(target))

    async def _auto_scroll(self, page: Page) -> None:
        """Scroll down in fixed steps until the bottom is reached, to trigger lazy loading."""
        step = self.config.scroll_step
        scrolled = 0
        try:
            for _ in range(self.config.max_scroll_steps):
                height = await page.evaluate(_SCROLL_HEIGHT_JS)
                if scrolled >= (height or 0):
                    break
                await page.evaluate(_SCROLL_BY_JS, step)
                scrolled += step
                await asyncio.sleep(self.config.scroll_delay)
        except PlaywrightError as exc:
            logger.debug("Scrolling %s stopped early: %s", page.url, exc)


class HttpRenderer:
    """Fetches raw markup over HTTP; client scripts are not executed."""

    def __init__(self, config: MirrorConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HttpRenderer:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.navigation_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    async def render(self, target: CrawlTarget, origin: Optional[str] = None) -> RenderedPage:
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(target.url) as resp:
                if not 200 <= resp.status < 300:
                    raise NavigationError(target.url, f"HTTP {resp.status}")
                mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                if "html" not in mime:
                    raise NavigationError(target.url, f"not an HTML document ({mime or 'no type'})")
                html = await resp.text(errors="replace")
                final_url = str(resp.url)
        except asyncio.TimeoutError as exc:
            raise NavigationError(target.url, "timeout") from exc
        except ClientError as exc:
            raise NavigationError(target.url, str(exc) or type(exc).__name__) from exc
        return extract_page(target, final_url, html, origin or origin_of(target))


def create_renderer(config: MirrorConfig) -> Renderer:
    if config.renderer == "http":
        return HttpRenderer(config)
    return BrowserRenderer(config)

# site_rebuilder/crawler/browser.py
"""
Browser capability consumed by the crawler.

The crawler only needs :class:`PageRenderer`: render a URL and hand back the
DOM, the visible text and a full-page screenshot. :class:`PlaywrightRenderer`
does that with headless Chromium.
"""
from __future__ import annotations

from typing import Optional, Protocol

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_rebuilder.crawler.models import RenderedPage
from site_rebuilder.errors import PartialCrawlError
from site_rebuilder.logger import logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120 Safari/537.36"
)

LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
)


class PageRenderer(Protocol):
    async def render(self, url: str) -> RenderedPage: ...


class PlaywrightRenderer:
    """Renders pages in headless Chromium; use as an async context manager."""

    def __init__(
        self,
        *,
        headless: bool = True,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Optional[dict] = None,
    ) -> None:
        self.headless = headless
        self.timeout_ms = int(timeout * 1000)
        self.user_agent = user_agent
        self.viewport = viewport or {"width": 1280, "height": 800}
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> PlaywrightRenderer:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=list(LAUNCH_ARGS)
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.debug("Chromium launched (headless=%s)", self.headless)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def render(self, url: str) -> RenderedPage:
        if self._browser is None:
            raise RuntimeError("Browser not started")
        page = await self._browser.new_page(user_agent=self.user_agent, viewport=self.viewport)
        try:
            try:
                response = await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            except PlaywrightTimeoutError:
                # analytics and websockets can keep the network busy forever
                logger.debug("networkidle timeout for %s, retrying with domcontentloaded", url)
                response = await page.goto(
                    url, wait_until="domcontentloaded", timeout=self.timeout_ms
                )
            status = response.status if response is not None else 200
            if status >= 400:
                raise PartialCrawlError(url, f"HTTP {status}")
            html = await page.content()
            text = await page.evaluate("() => document.body ? document.body.innerText : ''")
            screenshot = await page.screenshot(full_page=True)
        except PlaywrightError as exc:
            raise PartialCrawlError(url, str(exc)) from exc
        finally:
            await page.close()
        return RenderedPage(url=url, html=html, visible_text=text or "", screenshot=screenshot, status=status)

"""
Headless rendering via Playwright (Chromium).

Used only when the escalation heuristic decides the static HTML is not
representative (client-side injected content or schema). Each render owns
its own browser; the browser is closed on every exit path.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from eei.core.exceptions import RenderError

logger = structlog.get_logger()

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


@dataclass
class RenderedPage:
    url: str
    final_url: str
    status_code: int
    html: str


class PlaywrightRenderer:
    """Navigate, wait for network idle, return the rendered DOM."""

    def __init__(self, timeout: float = 45.0, headless: bool = True):
        self.timeout = timeout
        self.headless = headless
        self.log = logger.bind(component="PlaywrightRenderer")

    @asynccontextmanager
    async def _page(self, user_agent: str) -> AsyncIterator[Page]:
        """Scoped browser page; browser and driver released on exit."""
        async with async_playwright() as pw:
            browser: Browser = await pw.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
            try:
                page = await browser.new_page(user_agent=user_agent)
                yield page
            finally:
                await browser.close()

    async def _render(self, url: str, user_agent: str) -> RenderedPage:
        async with self._page(user_agent) as page:
            response = await page.goto(
                url,
                timeout=self.timeout * 1000,
                wait_until="networkidle",
            )
            html = await page.content()
            return RenderedPage(
                url=url,
                final_url=page.url,
                status_code=response.status if response else 200,
                html=html,
            )

    async def render(self, url: str, user_agent: str) -> RenderedPage:
        """
        Render a page.

        Raises:
            RenderError: browser unavailable, navigation failed or timed out
        """
        try:
            return await asyncio.wait_for(self._render(url, user_agent), timeout=self.timeout)
        except TimeoutError as e:
            raise RenderError("Rendered fetch timed out", details={"url": url}) from e
        except PlaywrightError as e:
            raise RenderError(f"Rendered fetch failed: {e.message}", details={"url": url}) from e

"""
Crawl Escalation Engine.

Static-first crawling with conditional headless escalation:

1. Static fetch and parse (cheap, always).
2. should_escalate() decides whether the static HTML is representative.
3. If not, render with a random AI-crawler identity.
4. Any rendered failure falls back to the static record. Only a failed
   static fetch yields an error record.

crawl() never raises for fetch failures; it returns a PageRecord with
`error` set instead.
"""

from dataclasses import dataclass
from typing import Protocol

import structlog

from eei.core.config import Settings
from eei.core.exceptions import CrawlError
from eei.services.crawl.base import CrawlMode, ErrorKind, PageRecord
from eei.services.crawl.parser import parse_page
from eei.services.crawl.renderer import RenderedPage
from eei.services.crawl.static import StaticFetcher
from eei.services.user_agent import random_ai_user_agent

logger = structlog.get_logger()


class Renderer(Protocol):
    async def render(self, url: str, user_agent: str) -> RenderedPage: ...


@dataclass(frozen=True)
class EscalationThresholds:
    min_words: int = 200
    max_scripts: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "EscalationThresholds":
        return cls(
            min_words=settings.escalate_min_words,
            max_scripts=settings.escalate_max_scripts,
        )


def should_escalate(
    page: PageRecord,
    requested_mode: CrawlMode = CrawlMode.STATIC,
    thresholds: EscalationThresholds | None = None,
) -> bool:
    """
    Decide whether a static result needs a rendered fetch.

    Escalate when rendering was requested, or the static HTML looks
    client-rendered: thin text, script-heavy, no structured data, or a
    <noscript> fallback.
    """
    if requested_mode == CrawlMode.RENDERED:
        return True

    t = thresholds or EscalationThresholds()
    d = page.diagnostics

    if d.word_count < t.min_words:
        return True
    if d.script_count > t.max_scripts:
        return True
    if len(page.schema_objects) == 0:
        return True
    if d.has_noscript:
        return True
    return False


class CrawlEngine:
    """Produces one PageRecord per URL, escalating to a renderer when needed."""

    def __init__(
        self,
        fetcher: StaticFetcher,
        renderer: Renderer | None,
        settings: Settings,
    ):
        """
        Args:
            fetcher: static fetcher
            renderer: headless renderer, or None when rendering is disabled
            settings: thresholds, user agents
        """
        self.fetcher = fetcher
        self.renderer = renderer
        self.settings = settings
        self.thresholds = EscalationThresholds.from_settings(settings)
        self.log = logger.bind(component="CrawlEngine")

    async def crawl_static(self, url: str) -> PageRecord:
        """Static fetch + parse. Failures become an error record."""
        try:
            response = await self.fetcher.fetch(url, user_agent=self.settings.static_user_agent)
        except CrawlError as e:
            self.log.info("Static fetch failed", url=url[:80], kind=e.kind, error=e.message)
            return PageRecord.failed(
                url,
                error=e.message,
                kind=ErrorKind(e.kind),
                http_status=e.details.get("status"),
            )

        return parse_page(
            response.html,
            url,
            mode=CrawlMode.STATIC,
            http_status=response.status_code,
            final_url=response.final_url,
        )

    async def crawl_rendered(self, url: str) -> PageRecord:
        """Rendered fetch + parse. Raises RenderError (or anything the renderer raises)."""
        rendered = await self.renderer.render(url, random_ai_user_agent(self.settings))
        return parse_page(
            rendered.html,
            url,
            mode=CrawlMode.RENDERED,
            http_status=rendered.status_code,
            final_url=rendered.final_url,
        )

    async def crawl(self, url: str, mode: CrawlMode = CrawlMode.STATIC) -> PageRecord:
        """Crawl a URL, escalating to a rendered fetch when the heuristic says so."""
        static = await self.crawl_static(url)
        if not static.success:
            return static

        if not should_escalate(static, mode, self.thresholds):
            return static

        if self.renderer is None:
            self.log.debug("Escalation wanted but rendering disabled", url=url[:80])
            return static

        try:
            rendered = await self.crawl_rendered(url)
        except Exception as e:
            # Renderer unavailable, crashed or timed out: keep the static view.
            self.log.info("Rendered fetch failed, using static result", url=url[:80], error=str(e))
            return static

        self.log.debug(
            "Escalated to rendered fetch",
            url=url[:80],
            static_words=static.diagnostics.word_count,
            rendered_words=rendered.diagnostics.word_count,
        )
        return rendered

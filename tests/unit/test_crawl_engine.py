"""
Unit tests for the Crawl Escalation Engine.

Network is faked with httpx.MockTransport; the renderer is an in-test fake.
"""

import httpx
import pytest

from eei.core.exceptions import BlockedError, RenderError
from eei.services.crawl import (
    CrawlEngine,
    CrawlMode,
    ErrorKind,
    EscalationThresholds,
    StaticFetcher,
    should_escalate,
)
from eei.services.crawl.base import PageDiagnostics
from eei.services.url_utils import RobotsChecker
from tests.factories import FakeRenderer, build_html, make_page, mock_client, rich_html

URL = "https://example.com/"


def _engine(client, settings, renderer=None) -> CrawlEngine:
    return CrawlEngine(StaticFetcher(client, timeout=5.0, max_attempts=1), renderer, settings)


class TestShouldEscalate:
    """Test the escalation heuristic."""

    def _page(self, words=500, scripts=0, schema=1, noscript=False):
        return make_page(
            schema_objects=[{"@type": "Thing"}] * schema,
            diagnostics=PageDiagnostics(word_count=words, script_count=scripts, has_noscript=noscript),
        )

    def test_representative_page_not_escalated(self):
        assert should_escalate(self._page()) is False

    def test_rendered_mode_requested(self):
        assert should_escalate(self._page(), CrawlMode.RENDERED) is True

    @pytest.mark.parametrize("words", [0, 50, 199])
    def test_thin_text_escalates(self, words):
        assert should_escalate(self._page(words=words)) is True

    def test_no_schema_escalates(self):
        assert should_escalate(self._page(schema=0)) is True

    def test_script_heavy_escalates(self):
        assert should_escalate(self._page(scripts=61)) is True
        assert should_escalate(self._page(scripts=60)) is False

    def test_noscript_escalates(self):
        assert should_escalate(self._page(noscript=True)) is True

    def test_thresholds_are_configurable(self):
        lenient = EscalationThresholds(min_words=10, max_scripts=500)
        assert should_escalate(self._page(words=20, scripts=100), thresholds=lenient) is False


@pytest.mark.asyncio
class TestCrawlEngine:
    """Test static-first crawling with rendered escalation and fallback."""

    async def test_rich_static_page_is_not_rendered(self, settings):
        renderer = FakeRenderer(html=rich_html())
        async with mock_client({"https://example.com": (200, rich_html())}) as client:
            page = await _engine(client, settings, renderer).crawl(URL)

        assert page.success
        assert page.mode == CrawlMode.STATIC
        assert renderer.calls == []

    async def test_thin_static_page_escalates_to_rendered(self, settings):
        renderer = FakeRenderer(html=rich_html(words=900))
        async with mock_client({"https://example.com": (200, build_html(words=20))}) as client:
            page = await _engine(client, settings, renderer).crawl(URL)

        assert page.mode == CrawlMode.RENDERED
        assert page.diagnostics.word_count >= 900
        assert len(renderer.calls) == 1
        assert renderer.calls[0][1] in settings.ai_user_agents

    async def test_rendered_failure_falls_back_to_static(self, settings):
        renderer = FakeRenderer(error=RenderError("browser crashed"))
        async with mock_client({"https://example.com": (200, build_html(words=20))}) as client:
            engine = _engine(client, settings, renderer)
            static = await engine.crawl_static(URL)
            page = await engine.crawl(URL)

        assert page.success
        assert page == static
        assert page.mode == CrawlMode.STATIC

    async def test_unexpected_renderer_error_falls_back(self, settings):
        renderer = FakeRenderer(error=RuntimeError("driver missing"))
        async with mock_client({"https://example.com": (200, build_html(words=20))}) as client:
            page = await _engine(client, settings, renderer).crawl(URL)

        assert page.success
        assert page.mode == CrawlMode.STATIC

    async def test_no_renderer_returns_static(self, settings):
        async with mock_client({"https://example.com": (200, build_html(words=20))}) as client:
            page = await _engine(client, settings, None).crawl(URL, CrawlMode.RENDERED)

        assert page.success
        assert page.mode == CrawlMode.STATIC

    async def test_http_error_yields_error_record(self, settings):
        renderer = FakeRenderer(html=rich_html())
        async with mock_client({"https://example.com": (500, "oops")}) as client:
            page = await _engine(client, settings, renderer).crawl(URL)

        assert not page.success
        assert page.http_status == 500
        assert page.diagnostics.error_kind == ErrorKind.UNKNOWN
        assert page.title == ""
        assert page.schema_objects == []
        assert page.page_links == []
        assert renderer.calls == []

    async def test_forbidden_is_blocked(self, settings):
        async with mock_client({"https://example.com": (403, "no")}) as client:
            page = await _engine(client, settings).crawl(URL)

        assert page.diagnostics.error_kind == ErrorKind.BLOCKED
        assert page.http_status == 403

    async def test_timeout_is_classified(self, settings):
        async with mock_client({"https://example.com": httpx.ReadTimeout("slow")}) as client:
            page = await _engine(client, settings).crawl(URL)

        assert not page.success
        assert page.diagnostics.error_kind == ErrorKind.TIMEOUT

    async def test_connect_error_is_network(self, settings):
        async with mock_client({"https://example.com": httpx.ConnectError("dns failure")}) as client:
            page = await _engine(client, settings).crawl(URL)

        assert not page.success
        assert page.diagnostics.error_kind == ErrorKind.NETWORK


ROBOTS = "User-agent: *\nDisallow: /private\n"


@pytest.mark.asyncio
class TestRobotsCompliance:
    """Test robots.txt enforcement in the static fetcher."""

    def _fetcher(self, client, settings) -> StaticFetcher:
        robots = RobotsChecker(client, settings.static_user_agent)
        return StaticFetcher(client, timeout=5.0, max_attempts=1, robots=robots)

    async def test_disallowed_url_is_blocked(self, settings):
        routes = {
            "https://example.com/robots.txt": (200, ROBOTS),
            "https://example.com/private": (200, rich_html()),
        }
        async with mock_client(routes) as client:
            with pytest.raises(BlockedError) as exc_info:
                await self._fetcher(client, settings).fetch("https://example.com/private")

        assert exc_info.value.kind == "blocked"

    async def test_allowed_url_is_fetched(self, settings):
        routes = {
            "https://example.com/robots.txt": (200, ROBOTS),
            "https://example.com": (200, rich_html()),
        }
        async with mock_client(routes) as client:
            response = await self._fetcher(client, settings).fetch(URL)

        assert response.status_code == 200

    async def test_missing_robots_allows_everything(self, settings):
        async with mock_client({"https://example.com/private": (200, rich_html())}) as client:
            response = await self._fetcher(client, settings).fetch("https://example.com/private")

        assert response.status_code == 200

    async def test_robots_fetched_once_per_origin(self, settings):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            if request.url.path == "/robots.txt":
                return httpx.Response(200, text=ROBOTS)
            return httpx.Response(200, text=rich_html())

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = self._fetcher(client, settings)
            await fetcher.fetch("https://example.com/")
            await fetcher.fetch("https://example.com/about")

        assert requested.count("/robots.txt") == 1

    async def test_engine_records_blocked_page(self, settings):
        routes = {"https://example.com/robots.txt": (200, "User-agent: *\nDisallow: /\n")}
        async with mock_client(routes) as client:
            page = await CrawlEngine(self._fetcher(client, settings), None, settings).crawl(URL)

        assert not page.success
        assert page.diagnostics.error_kind == ErrorKind.BLOCKED

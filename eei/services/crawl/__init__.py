"""
Crawl Module for the EEI auditor.

Main components:
- CrawlEngine: static-first crawling with conditional headless escalation
- StaticFetcher: plain HTTP fetch mapped onto the crawl error taxonomy
- PlaywrightRenderer: headless Chromium rendering
- LiteCrawler: cheap static pass used by the promotion pipeline

Usage:
    async with build_client(settings) as client:
        engine = CrawlEngine(
            StaticFetcher(client, timeout=settings.static_timeout),
            PlaywrightRenderer(timeout=settings.rendered_timeout),
            settings,
        )
        page = await engine.crawl("https://example.com")
"""

from eei.services.crawl.base import (
    CrawlMode,
    ErrorKind,
    PageDiagnostics,
    PageMeta,
    PageRecord,
    SurfaceCrawl,
)
from eei.services.crawl.engine import CrawlEngine, EscalationThresholds, should_escalate
from eei.services.crawl.lite import LiteCrawler
from eei.services.crawl.parser import parse_json_ld, parse_page
from eei.services.crawl.renderer import PlaywrightRenderer
from eei.services.crawl.static import StaticFetcher, build_client

__all__ = [
    # Engine
    "CrawlEngine",
    "EscalationThresholds",
    "should_escalate",
    "LiteCrawler",
    "StaticFetcher",
    "PlaywrightRenderer",
    "build_client",

    # Types
    "CrawlMode",
    "ErrorKind",
    "PageDiagnostics",
    "PageMeta",
    "PageRecord",
    "SurfaceCrawl",

    # Parsing
    "parse_json_ld",
    "parse_page",
]

"""
Lite crawl: the cheap static pass that gates the heavy audit.

Either delegates to an external lite-crawl service (when `lite_crawl_url`
is configured) or runs a local static-only crawl. The delegate's JSON reply
is normalised into a PageRecord here, at the boundary.
"""

from typing import Any

import httpx
import structlog

from eei.core.config import Settings
from eei.services.crawl.base import CrawlMode, ErrorKind, PageDiagnostics, PageRecord
from eei.services.crawl.engine import CrawlEngine

logger = structlog.get_logger()


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def page_from_delegate(url: str, payload: dict[str, Any]) -> PageRecord:
    """Normalise a lite-crawl service reply into a PageRecord."""
    if not payload.get("success"):
        return PageRecord.failed(
            url,
            error=str(payload.get("error") or "lite-crawl-failed"),
            kind=ErrorKind.UNKNOWN,
        )

    schema = payload.get("schemaObjects") or []
    links = payload.get("pageLinks") or []
    diag = payload.get("diagnostics") or {}

    return PageRecord(
        url=payload.get("url") or url,
        mode=CrawlMode.STATIC,
        http_status=payload.get("status"),
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        canonical_href=payload.get("canonicalHref") or None,
        schema_objects=[obj for obj in schema if isinstance(obj, dict)],
        page_links=[href for href in links if isinstance(href, str)],
        latest_iso=payload.get("latestISO"),
        diagnostics=PageDiagnostics(
            word_count=_int(diag.get("wordCount")),
            link_count=len(links),
            schema_block_count=len(schema),
            json_ld_error_count=_int(diag.get("jsonLdErrorCount")),
            script_count=_int(diag.get("scriptCount")),
            has_noscript=bool(diag.get("hasNoscript")),
        ),
    )


class LiteCrawler:
    """Static-only crawl used before promotion."""

    def __init__(self, engine: CrawlEngine, client: httpx.AsyncClient, settings: Settings):
        self.engine = engine
        self.client = client
        self.settings = settings
        self.log = logger.bind(component="LiteCrawler")

    async def crawl(self, url: str) -> PageRecord:
        if not self.settings.lite_crawl_url:
            return await self.engine.crawl_static(url)
        return await self._delegate(url)

    async def _delegate(self, url: str) -> PageRecord:
        endpoint = f"{self.settings.lite_crawl_url.rstrip('/')}/crawl-lite"
        try:
            response = await self.client.post(
                endpoint,
                json={"url": url},
                timeout=self.settings.lite_crawl_timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            return PageRecord.failed(url, error="lite-crawl timed out", kind=ErrorKind.TIMEOUT)
        except (httpx.HTTPError, ValueError) as e:
            self.log.info("Lite crawl delegate failed", url=url[:80], error=str(e))
            return PageRecord.failed(url, error="lite-crawl-failed", kind=ErrorKind.NETWORK)

        if not isinstance(payload, dict):
            return PageRecord.failed(url, error="lite-crawl-failed", kind=ErrorKind.UNKNOWN)
        return page_from_delegate(url, payload)

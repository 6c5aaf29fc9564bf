"""
Single-URL audit pipeline.

Auditor.audit_url() is the transport-free core shared by the HTTP adapter,
the batch orchestrator and the ad-hoc pool:

    normalize -> discover -> crawl each surface (with escalation)
              -> aggregate -> score home page -> AuditOutcome

audit_promoted() runs the lite crawl first and only pays for the full audit
when the promotion gate passes.
"""

from typing import Any

import httpx
import structlog

from eei.core.config import Settings
from eei.core.exceptions import (
    BlockedError,
    CrawlError,
    FetchTimeoutError,
    NetworkError,
)
from eei.core.models import AuditOutcome, ComprehensionMode, Pipeline
from eei.services.aggregation import aggregate_surfaces
from eei.services.crawl.base import PageRecord, SurfaceCrawl
from eei.services.crawl.engine import CrawlEngine
from eei.services.crawl.lite import LiteCrawler
from eei.services.crawl.renderer import PlaywrightRenderer
from eei.services.crawl.static import StaticFetcher
from eei.services.discovery import SurfaceDiscovery
from eei.services.promotion import should_promote
from eei.services.scoring import ScoringConfig, find_type, score
from eei.services.url_utils import RobotsChecker, hostname_of, normalize_input_url

logger = structlog.get_logger()

_ERRORS_BY_KIND: dict[str, type[CrawlError]] = {
    "timeout": FetchTimeoutError,
    "blocked": BlockedError,
    "network": NetworkError,
}


def crawl_error_for(page: PageRecord) -> CrawlError:
    """Rebuild the typed crawl error carried by a failed PageRecord."""
    kind = page.diagnostics.error_kind.value if page.diagnostics.error_kind else "unknown"
    error_cls = _ERRORS_BY_KIND.get(kind, CrawlError)
    details: dict[str, Any] = {"url": page.url}
    if page.http_status is not None:
        details["status"] = page.http_status
    return error_cls(page.error or "Crawl failed", details=details)


def resolve_entity_name(page: PageRecord, hostname: str) -> str:
    """Organization name, then Person name, then the leading title segment, then hostname."""
    for type_name in ("Organization", "Person"):
        node = find_type(page.schema_objects, type_name)
        if node and isinstance(node.get("name"), str) and node["name"].strip():
            return node["name"].strip()

    title = page.title.split(" | ", 1)[0].strip()
    return title or hostname


class Auditor:
    """Runs the full or promoted audit for one URL."""

    def __init__(
        self,
        engine: CrawlEngine,
        discovery: SurfaceDiscovery,
        lite: LiteCrawler | None = None,
        scoring_config: ScoringConfig | None = None,
    ):
        self.engine = engine
        self.discovery = discovery
        self.lite = lite
        self.scoring_config = scoring_config
        self.log = logger.bind(component="Auditor")

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "Auditor":
        """Wire the crawl stack around one shared httpx client."""
        robots = (
            RobotsChecker(client, settings.static_user_agent)
            if settings.respect_robots_txt
            else None
        )
        fetcher = StaticFetcher(
            client,
            timeout=settings.static_timeout,
            max_attempts=1 + settings.static_retries,
            robots=robots,
        )
        renderer = (
            PlaywrightRenderer(timeout=settings.rendered_timeout)
            if settings.render_enabled
            else None
        )
        engine = CrawlEngine(fetcher, renderer, settings)
        discovery = SurfaceDiscovery(
            StaticFetcher(
                client, timeout=settings.discovery_timeout, max_attempts=1, robots=robots
            ),
            max_surfaces=settings.max_surfaces,
        )
        return cls(engine, discovery, lite=LiteCrawler(engine, client, settings))

    async def audit(self, url: str, pipeline: Pipeline = Pipeline.FULL) -> AuditOutcome:
        if pipeline == Pipeline.PROMOTED:
            return await self.audit_promoted(url)
        return await self.audit_url(url)

    async def audit_url(self, url: str) -> AuditOutcome:
        """
        Full audit of one URL.

        Raises:
            InputError: URL missing or unusable (before any I/O)
            CrawlError: the homepage itself could not be fetched
        """
        target = normalize_input_url(url)

        discovered = await self.discovery.discover(target)
        # Redirects resolved by discovery; report the URL the entity lives at.
        target = discovered.base_url
        hostname = hostname_of(target)

        crawls: list[SurfaceCrawl] = []
        for surface, surface_url in discovered.surfaces.items():
            page = await self.engine.crawl(surface_url)
            crawls.append(SurfaceCrawl(surface=surface, url=surface_url, page=page))

        # Discovery always yields "home" first.
        home = crawls[0].page
        if not home.success:
            raise crawl_error_for(home)

        aggregate = aggregate_surfaces(crawls)
        result = score(home, self.scoring_config, entity=aggregate)

        comprehension = (
            ComprehensionMode.SCALE_CONSTRAINED
            if discovered.degraded
            else ComprehensionMode.MULTI_SURFACE
        )

        self.log.info(
            "Audit complete",
            url=target[:80],
            entity_score=result.entity_score,
            band=result.band,
            surfaces=len(crawls),
            mode=home.mode.value,
        )

        return AuditOutcome(
            success=True,
            url=target,
            hostname=hostname,
            entity_name=resolve_entity_name(home, hostname),
            entity_score=result.entity_score,
            band=result.band,
            tier_scores=result.tier_scores,
            title=home.title or None,
            canonical=home.canonical_href,
            description=home.description or None,
            mode=home.mode.value,
            comprehension_mode=comprehension,
            degraded_discovery=discovered.degraded,
            surfaces=[crawl.url for crawl in crawls],
            latest_iso=home.latest_iso,
            breakdown=result.breakdown,
            entity_signals=aggregate.signals.as_dict(),
            entity_summary={**aggregate.summary, "confidence": aggregate.confidence},
        )

    async def audit_promoted(self, url: str) -> AuditOutcome:
        """
        Lite crawl, promotion gate, then the full audit when promoted.

        A page that is reachable but not promoted is a successful outcome with
        `promoted=False` and no score.
        """
        target = normalize_input_url(url)
        if self.lite is None:
            lite = await self.engine.crawl_static(target)
        else:
            lite = await self.lite.crawl(target)

        if not lite.success:
            raise crawl_error_for(lite)

        if not should_promote(lite):
            self.log.debug(
                "Not promoted", url=target[:80], schema_objects=len(lite.schema_objects)
            )
            hostname = hostname_of(target)
            return AuditOutcome(
                success=True,
                url=target,
                hostname=hostname,
                entity_name=resolve_entity_name(lite, hostname),
                title=lite.title or None,
                canonical=lite.canonical_href,
                description=lite.description or None,
                mode=lite.mode.value,
                promoted=False,
                latest_iso=lite.latest_iso,
            )

        outcome = await self.audit_url(target)
        return outcome.model_copy(update={"promoted": True})

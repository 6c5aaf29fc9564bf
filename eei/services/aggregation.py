"""
Surface Aggregator.

Synthesizes one entity-level signal set from the pages crawled across an
entity's identity surfaces. Pure: no I/O, no logging, deterministic for a
given input sequence.
"""

from dataclasses import asdict, dataclass, field
from typing import Any
from urllib.parse import urlparse

from eei.services.crawl.base import SurfaceCrawl


@dataclass(frozen=True)
class EntitySignals:
    surface_count: int = 0
    content_depth: int = 0
    schema_coverage: int = 0
    schema_diversity: int = 0
    canonical_consistency: bool = False
    canonical_count: int = 0
    internal_link_strength: float = 0.0
    social_authority_count: int = 0
    title_consistency: float = 1.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EntityAggregate:
    """Aggregator output: per-surface summary, derived signals, confidence."""
    summary: dict[str, Any] = field(default_factory=dict)
    signals: EntitySignals = field(default_factory=EntitySignals)
    confidence: dict[str, Any] = field(default_factory=dict)
    social_hosts: list[str] = field(default_factory=list)


def _schema_types(obj: dict[str, Any]) -> list[str]:
    value = obj.get("@type")
    if isinstance(value, list):
        return [t for t in value if isinstance(t, str)]
    if isinstance(value, str):
        return [value]
    return []


def same_as_hosts(obj: dict[str, Any]) -> list[str]:
    value = obj.get("sameAs")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []

    hosts = []
    for link in value:
        if not isinstance(link, str):
            continue
        try:
            host = urlparse(link.strip()).hostname
        except ValueError:
            continue
        if host:
            hosts.append(host.lower())
    return hosts


def aggregate_surfaces(surfaces: list[SurfaceCrawl]) -> EntityAggregate:
    """
    Aggregate crawled surfaces into entity-level signals.

    Unsuccessful surfaces are skipped entirely. With no successful surface
    every total is zero and canonical_consistency is False (zero distinct
    canonicals is not exactly one).
    """
    total_words = 0
    total_schemas = 0
    internal_links = 0
    external_links = 0
    schema_types: set[str] = set()
    titles: list[str] = []
    canonicals: set[str] = set()
    social_hosts: set[str] = set()
    per_surface: dict[str, dict[str, Any]] = {}
    failed: list[str] = []

    for crawl in surfaces:
        if not crawl.success:
            failed.append(crawl.surface)
            continue

        page = crawl.page
        diag = page.diagnostics

        per_surface[crawl.surface] = {
            "url": crawl.url,
            "mode": page.mode.value,
            "title": page.title,
            "canonical": page.canonical_href,
            "word_count": diag.word_count,
            "schema_count": len(page.schema_objects),
            "internal_link_count": diag.internal_link_count,
            "external_link_count": diag.external_link_count,
        }

        total_words += diag.word_count
        total_schemas += len(page.schema_objects)
        internal_links += diag.internal_link_count
        external_links += diag.external_link_count

        if page.title:
            titles.append(page.title)
        if page.canonical_href:
            canonicals.add(page.canonical_href)

        for obj in page.schema_objects:
            schema_types.update(_schema_types(obj))
            social_hosts.update(same_as_hosts(obj))

    linked = internal_links + external_links
    signals = EntitySignals(
        surface_count=len(per_surface),
        content_depth=total_words,
        schema_coverage=total_schemas,
        schema_diversity=len(schema_types),
        canonical_consistency=len(canonicals) == 1,
        canonical_count=len(canonicals),
        internal_link_strength=internal_links / linked if linked else 0.0,
        social_authority_count=len(social_hosts),
        title_consistency=len(set(titles)) / len(titles) if len(titles) > 1 else 1.0,
    )

    summary = {
        "surfaces": per_surface,
        "totals": {
            "total_words": total_words,
            "total_schemas": total_schemas,
            "internal_links": internal_links,
            "external_links": external_links,
            "schema_types": sorted(schema_types),
            "social_hosts": sorted(social_hosts),
        },
    }

    attempted = len(surfaces)
    confidence = {
        "surfaces_attempted": attempted,
        "surfaces_succeeded": len(per_surface),
        "surfaces_failed": failed,
        "coverage": round(len(per_surface) / attempted, 2) if attempted else 0.0,
        "multi_surface": len(per_surface) > 1,
    }

    return EntityAggregate(
        summary=summary,
        signals=signals,
        confidence=confidence,
        social_hosts=sorted(social_hosts),
    )

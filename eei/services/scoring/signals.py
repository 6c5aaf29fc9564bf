"""
Signal rules.

Each rule maps page evidence to one SignalResult using the thresholds of its
SignalSpec. Rules are pure and synchronous; bounding to [0, max] is done by
the scorer.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

from eei.core.models import SignalResult
from eei.services.crawl.base import PageRecord
from eei.services.scoring import config as c
from eei.services.scoring.config import SignalSpec
from eei.services.url_utils import hostname_of, origin_of


@dataclass
class ScoringContext:
    """Evidence shared by all rules for one scoring pass."""
    page: PageRecord
    origin_host: str
    social_hosts: set[str] = field(default_factory=set)

    @property
    def base_url(self) -> str:
        return self.page.final_url or self.page.url


Rule = Callable[[ScoringContext, SignalSpec], SignalResult]


def has_type(obj: dict[str, Any], type_name: str) -> bool:
    value = obj.get("@type")
    if isinstance(value, list):
        return type_name in value
    return value == type_name


def find_type(objects: list[dict[str, Any]], type_name: str) -> dict[str, Any] | None:
    return next((obj for obj in objects if has_type(obj, type_name)), None)


def _link_host(base_url: str, href: str) -> str:
    try:
        return hostname_of(urljoin(base_url, href))
    except ValueError:
        return ""


def _result(name: str, spec: SignalSpec, points: float, notes: str, raw: Any = None) -> SignalResult:
    return SignalResult(name=name, points=points, max=spec.max, notes=notes, raw=raw)


# =============================================================================
# Tier 1
# =============================================================================


def score_internal_links(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    total = len(ctx.page.page_links)
    internal = 0
    for href in ctx.page.page_links:
        if _link_host(ctx.base_url, href) == ctx.origin_host:
            internal += 1
    ratio = internal / total if total else 0.0

    points, notes = 0.0, "No internal links"
    if ratio >= spec.t("strong_ratio") and internal >= spec.t("strong_internal"):
        points, notes = spec.max, "Strong lattice"
    elif ratio >= spec.t("some_ratio") and internal >= spec.t("some_internal"):
        points, notes = spec.t("some_points"), "Some internal linking"

    raw = {"total": total, "internal": internal, "ratio": round(ratio, 3)}
    return _result(c.INTERNAL_LATTICE, spec, points, notes, raw)


def score_external_links(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    hosts: set[str] = set()
    for href in ctx.page.page_links:
        host = _link_host(ctx.base_url, href)
        if host and host != ctx.origin_host:
            hosts.add(host)

    present = len(hosts) >= spec.t("min_hosts")
    notes = "Outbound credibility present" if present else "No outbound links"
    raw = {"count": len(hosts), "distinct_outbound_hosts": sorted(hosts)}
    return _result(c.EXTERNAL_AUTHORITY, spec, spec.max if present else 0.0, notes, raw)


def score_ai_crawl(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    robots = ctx.page.meta.robots
    ping = ctx.page.meta.has_crawl_ping
    raw = {"robots": robots, "crawl_ping": ping}

    directives = {d.strip() for d in robots.split(",")}
    if "noindex" in directives or "none" in directives:
        return _result(c.AI_CRAWL_FIDELITY, spec, 0.0, "Robots block indexing", raw)
    if ping:
        return _result(c.AI_CRAWL_FIDELITY, spec, spec.max, "Explicit crawl ping", raw)
    return _result(
        c.AI_CRAWL_FIDELITY, spec, spec.t("indexable_points"), "Indexable, no explicit ping", raw
    )


def score_content_depth(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    words = ctx.page.diagnostics.word_count

    points, notes = 0.0, f"Shallow (<{int(spec.t('moderate_words'))} words)"
    if words >= spec.t("deep_words"):
        points, notes = spec.max, "Deep context"
    elif words >= spec.t("moderate_words"):
        points, notes = spec.t("moderate_points"), "Moderate"

    return _result(c.CONTENT_DEPTH, spec, points, notes, {"word_count": words})


def score_social_links(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    count = len(ctx.social_hosts)

    points, notes = 0.0, "No sameAs profiles"
    if count >= spec.t("full_hosts"):
        points, notes = spec.max, "Multiple linked profiles"
    elif count >= spec.t("partial_hosts"):
        points, notes = spec.t("partial_points"), "Few linked profiles"

    raw = {"count": count, "hosts": sorted(ctx.social_hosts)}
    return _result(c.SOCIAL_LINKS, spec, points, notes, raw)


# =============================================================================
# Tier 2
# =============================================================================


def score_schema_presence(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    count = len(ctx.page.schema_objects)

    points, notes = 0.0, "No JSON-LD found"
    if count >= spec.t("full_blocks"):
        points, notes = spec.max, "Multiple schema blocks"
    elif count >= spec.t("partial_blocks"):
        points, notes = spec.t("partial_points"), "Limited schema coverage"

    raw = {
        "schema_blocks": count,
        "invalid_blocks": ctx.page.diagnostics.json_ld_error_count,
    }
    return _result(c.SCHEMA_PRESENCE, spec, points, notes, raw)


def score_organization(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    org = find_type(ctx.page.schema_objects, "Organization")
    if org is None:
        return _result(c.ORGANIZATION_SCHEMA, spec, 0.0, "Missing organization schema")

    if org.get("name") and org.get("url"):
        return _result(c.ORGANIZATION_SCHEMA, spec, spec.max, "Organization schema valid", org)
    return _result(
        c.ORGANIZATION_SCHEMA,
        spec,
        spec.t("incomplete_points"),
        "Organization schema incomplete",
        org,
    )


def score_breadcrumb(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    crumb = find_type(ctx.page.schema_objects, "BreadcrumbList")
    if crumb is None:
        return _result(c.BREADCRUMB_SCHEMA, spec, 0.0, "Missing")
    return _result(c.BREADCRUMB_SCHEMA, spec, spec.max, "Breadcrumb schema present", crumb)


def score_author(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    person = find_type(ctx.page.schema_objects, "Person")
    author = ctx.page.meta.author
    raw = {"person": person is not None, "meta_author": author}

    if person is not None:
        return _result(c.AUTHOR_PERSON, spec, spec.max, "Person schema present", raw)
    if author:
        return _result(
            c.AUTHOR_PERSON, spec, spec.t("meta_author_points"), "Author meta tag present", raw
        )
    return _result(c.AUTHOR_PERSON, spec, 0.0, "Missing", raw)


# =============================================================================
# Tier 3
# =============================================================================


def score_title(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    title = ctx.page.title.strip()
    raw = {"title": title}
    if not title:
        return _result(c.TITLE_PRECISION, spec, 0.0, "Missing", raw)

    has_separator = " | " in title or " - " in title
    if len(title) >= spec.t("specific_length") and has_separator:
        return _result(c.TITLE_PRECISION, spec, spec.max, "Specific & contextual", raw)
    if len(title) >= spec.t("generic_length"):
        return _result(c.TITLE_PRECISION, spec, spec.t("generic_points"), "Present but generic", raw)
    return _result(c.TITLE_PRECISION, spec, spec.t("weak_points"), "Weak or too short", raw)


def score_meta_description(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    description = ctx.page.description
    raw = {"meta": description}
    if not description:
        return _result(c.META_DESCRIPTION, spec, 0.0, "Missing", raw)

    if len(description) >= spec.t("complete_length"):
        return _result(c.META_DESCRIPTION, spec, spec.max, "Descriptive & complete", raw)
    if len(description) >= spec.t("moderate_length"):
        return _result(c.META_DESCRIPTION, spec, spec.t("moderate_points"), "Moderate depth", raw)
    return _result(c.META_DESCRIPTION, spec, spec.t("short_points"), "Too short", raw)


def score_canonical(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    href = (ctx.page.canonical_href or "").strip()
    raw = {"canonical": href}
    if not href:
        return _result(c.CANONICAL_CLARITY, spec, 0.0, "Missing", raw)

    try:
        resolved = urljoin(ctx.base_url, href)
        parsed = urlparse(resolved)
    except ValueError:
        parsed = None
    if parsed is None or parsed.scheme not in ("http", "https") or not parsed.hostname:
        return _result(c.CANONICAL_CLARITY, spec, spec.t("invalid_points"), "Invalid canonical URL", raw)

    clean = origin_of(resolved) == origin_of(ctx.base_url) and not (parsed.query or parsed.fragment)
    if clean:
        return _result(c.CANONICAL_CLARITY, spec, spec.max, "Clean absolute canonical", raw)
    return _result(
        c.CANONICAL_CLARITY, spec, spec.t("inconsistent_points"), "Present but inconsistent", raw
    )


def score_brand(ctx: ScoringContext, spec: SignalSpec) -> SignalResult:
    favicon = ctx.page.meta.favicon_href
    og_image = ctx.page.meta.og_image
    raw = {"favicon": favicon, "og_image": og_image}
    if favicon or og_image:
        return _result(c.BRAND_CONSISTENCY, spec, spec.max, "Branding consistent", raw)
    return _result(c.BRAND_CONSISTENCY, spec, 0.0, "Missing", raw)


SIGNAL_RULES: dict[str, Rule] = {
    c.INTERNAL_LATTICE: score_internal_links,
    c.EXTERNAL_AUTHORITY: score_external_links,
    c.AI_CRAWL_FIDELITY: score_ai_crawl,
    c.CONTENT_DEPTH: score_content_depth,
    c.SOCIAL_LINKS: score_social_links,
    c.SCHEMA_PRESENCE: score_schema_presence,
    c.ORGANIZATION_SCHEMA: score_organization,
    c.BREADCRUMB_SCHEMA: score_breadcrumb,
    c.AUTHOR_PERSON: score_author,
    c.TITLE_PRECISION: score_title,
    c.META_DESCRIPTION: score_meta_description,
    c.CANONICAL_CLARITY: score_canonical,
    c.BRAND_CONSISTENCY: score_brand,
}

"""
Signal Scorer.

score() runs every configured signal rule over a page, bounds each result to
[0, max], normalizes the sum against the total configured weight and
classifies the result into a band.
"""

import math

from eei.core.exceptions import InternalError
from eei.core.models import ScoreResult, SignalResult
from eei.services.aggregation import EntityAggregate, same_as_hosts
from eei.services.crawl.base import PageRecord
from eei.services.scoring.bands import compute_band
from eei.services.scoring.config import DEFAULT_SCORING_CONFIG, ScoringConfig
from eei.services.scoring.signals import SIGNAL_RULES, ScoringContext
from eei.services.scoring.tiers import compute_tiers
from eei.services.url_utils import hostname_of


def _bounded(result: SignalResult) -> SignalResult:
    points = min(max(result.points, 0.0), result.max)
    if points == result.points:
        return result
    return SignalResult(
        name=result.name, points=points, max=result.max, notes=result.notes, raw=result.raw
    )


def normalize_score(points: float, total_weight: float) -> int:
    """round(points * 100 / total_weight) clamped to 0..100, halves rounded up."""
    if total_weight <= 0:
        return 0
    value = math.floor(points * 100 / total_weight + 0.5)
    return int(min(max(value, 0), 100))


def build_context(page: PageRecord, entity: EntityAggregate | None = None) -> ScoringContext:
    social = set()
    for obj in page.schema_objects:
        social.update(same_as_hosts(obj))
    if entity is not None:
        social.update(entity.social_hosts)
    return ScoringContext(
        page=page,
        origin_host=hostname_of(page.final_url or page.url),
        social_hosts=social,
    )


def score(
    page: PageRecord,
    config: ScoringConfig | None = None,
    entity: EntityAggregate | None = None,
) -> ScoreResult:
    """
    Score one page, optionally enriched with entity-level evidence.

    Raises:
        InternalError: a rule failed on a valid PageRecord
    """
    config = config or DEFAULT_SCORING_CONFIG
    ctx = build_context(page, entity)

    breakdown: list[SignalResult] = []
    for name, spec in config.signals.items():
        rule = SIGNAL_RULES.get(name)
        if rule is None:
            raise InternalError(f"No rule registered for signal {name!r}")
        try:
            result = rule(ctx, spec)
        except Exception as e:
            raise InternalError(
                f"Signal {name!r} failed", details={"url": page.url, "error": str(e)}
            ) from e
        breakdown.append(_bounded(result))

    total = sum(s.points for s in breakdown)
    entity_score = normalize_score(total, config.total_weight)

    return ScoreResult(
        entity_score=entity_score,
        band=compute_band(entity_score, config),
        breakdown=breakdown,
        tier_scores=compute_tiers(breakdown, config),
    )

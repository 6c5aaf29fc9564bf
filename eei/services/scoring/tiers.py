"""
Tier grouping.

Tier totals are a re-grouping of already-computed signal points by the
name -> tier table in ScoringConfig. No scoring logic lives here.
"""

from eei.core.models import SignalResult, TierScores
from eei.services.scoring.config import ScoringConfig


def compute_tiers(signals: list[SignalResult], config: ScoringConfig) -> TierScores:
    sums = {"tier1": 0.0, "tier2": 0.0, "tier3": 0.0}
    for signal in signals:
        tier = config.tier_of(signal.name)
        if tier is not None:
            sums[tier] += signal.points
    return TierScores(**sums)

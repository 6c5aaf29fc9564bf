"""
Scoring Module for the EEI auditor.

Usage:
    result = score(page)                       # default rubric
    result = score(page, config=my_config)     # injected rubric
    result = score(page, entity=aggregate)     # with entity-level evidence

    print(result.entity_score, result.band, result.tier_scores)
"""

from eei.services.scoring.bands import compute_band
from eei.services.scoring.config import (
    DEFAULT_SCORING_CONFIG,
    BandStep,
    ScoringConfig,
    SignalSpec,
)
from eei.services.scoring.scorer import normalize_score, score
from eei.services.scoring.signals import SIGNAL_RULES, ScoringContext, find_type
from eei.services.scoring.tiers import compute_tiers

__all__ = [
    "score",
    "normalize_score",
    "compute_band",
    "compute_tiers",
    "ScoringConfig",
    "SignalSpec",
    "BandStep",
    "DEFAULT_SCORING_CONFIG",
    "SIGNAL_RULES",
    "ScoringContext",
    "find_type",
]

"""Band classification over the normalized entity score."""

from eei.services.scoring.config import ScoringConfig


def compute_band(entity_score: float, config: ScoringConfig) -> str:
    """Return the highest band whose lower bound the score reaches."""
    for step in config.bands:
        if entity_score >= step.min_score:
            return step.name
    # Score below every configured floor: lowest band.
    return config.bands[-1].name

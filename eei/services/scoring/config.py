"""
Scoring configuration.

Every weight, threshold, tier assignment and band boundary used by the
scorer lives here. Signal rules read their numbers from `SignalSpec`; none
are hard-coded in the rules themselves.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

Tier = Literal["tier1", "tier2", "tier3"]

# Signal names (also the keys of ScoringConfig.signals)
INTERNAL_LATTICE = "Internal Lattice Integrity"
EXTERNAL_AUTHORITY = "External Authority Signal"
AI_CRAWL_FIDELITY = "AI Crawl Fidelity"
CONTENT_DEPTH = "Inference Efficiency"
SOCIAL_LINKS = "Social Links"
SCHEMA_PRESENCE = "Schema Presence & Validity"
ORGANIZATION_SCHEMA = "Organization Schema"
BREADCRUMB_SCHEMA = "Breadcrumb Schema"
AUTHOR_PERSON = "Author/Person Schema"
TITLE_PRECISION = "Title Precision"
META_DESCRIPTION = "Meta Description Integrity"
CANONICAL_CLARITY = "Canonical Clarity"
BRAND_CONSISTENCY = "Brand & Technical Consistency"


class SignalSpec(BaseModel):
    """Weight, tier and thresholds for one signal."""
    max: float = Field(gt=0)
    tier: Tier
    thresholds: dict[str, float] = Field(default_factory=dict)

    def t(self, key: str) -> float:
        return self.thresholds[key]


class BandStep(BaseModel):
    name: str
    min_score: float = Field(ge=0, le=100)


class ScoringConfig(BaseModel):
    """Injectable scoring rubric."""
    signals: dict[str, SignalSpec]
    bands: list[BandStep]

    @field_validator("bands")
    @classmethod
    def sort_bands(cls, v: list[BandStep]) -> list[BandStep]:
        """Ladder is evaluated highest threshold first."""
        if not v:
            raise ValueError("At least one band is required")
        return sorted(v, key=lambda b: b.min_score, reverse=True)

    @property
    def total_weight(self) -> float:
        return sum(spec.max for spec in self.signals.values())

    def tier_of(self, name: str) -> Tier | None:
        spec = self.signals.get(name)
        return spec.tier if spec else None


DEFAULT_SCORING_CONFIG = ScoringConfig(
    signals={
        # Tier 1: AI comprehension
        INTERNAL_LATTICE: SignalSpec(
            max=45,
            tier="tier1",
            thresholds={
                "strong_ratio": 0.5, "strong_internal": 10,
                "some_ratio": 0.2, "some_internal": 3, "some_points": 22,
            },
        ),
        EXTERNAL_AUTHORITY: SignalSpec(max=8, tier="tier1", thresholds={"min_hosts": 1}),
        AI_CRAWL_FIDELITY: SignalSpec(max=12, tier="tier1", thresholds={"indexable_points": 7}),
        CONTENT_DEPTH: SignalSpec(
            max=12,
            tier="tier1",
            thresholds={"deep_words": 1200, "moderate_words": 300, "moderate_points": 6},
        ),
        SOCIAL_LINKS: SignalSpec(
            max=6,
            tier="tier1",
            thresholds={"full_hosts": 3, "partial_hosts": 1, "partial_points": 3},
        ),
        # Tier 2: structural schema
        SCHEMA_PRESENCE: SignalSpec(
            max=25,
            tier="tier2",
            thresholds={"full_blocks": 3, "partial_blocks": 1, "partial_points": 12},
        ),
        ORGANIZATION_SCHEMA: SignalSpec(max=10, tier="tier2", thresholds={"incomplete_points": 5}),
        BREADCRUMB_SCHEMA: SignalSpec(max=5, tier="tier2"),
        AUTHOR_PERSON: SignalSpec(max=5, tier="tier2", thresholds={"meta_author_points": 2}),
        # Tier 3: page hygiene
        TITLE_PRECISION: SignalSpec(
            max=10,
            tier="tier3",
            thresholds={
                "specific_length": 30, "generic_length": 15,
                "generic_points": 6, "weak_points": 3,
            },
        ),
        META_DESCRIPTION: SignalSpec(
            max=8,
            tier="tier3",
            thresholds={
                "complete_length": 120, "moderate_length": 60,
                "moderate_points": 5, "short_points": 3,
            },
        ),
        CANONICAL_CLARITY: SignalSpec(
            max=5,
            tier="tier3",
            thresholds={"inconsistent_points": 2, "invalid_points": 1},
        ),
        BRAND_CONSISTENCY: SignalSpec(max=5, tier="tier3"),
    },
    bands=[
        BandStep(name="Sovereign", min_score=90),
        BandStep(name="Platinum", min_score=80),
        BandStep(name="Gold", min_score=60),
        BandStep(name="Silver", min_score=40),
        BandStep(name="Bronze", min_score=20),
        BandStep(name="Obscure", min_score=0),
    ],
)

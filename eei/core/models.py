"""
Core models and types for the EEI auditor.

Persisted records (Job, AuditOutcome, DriftSnapshot) are pydantic models so
they round-trip through the key-value store as JSON. Scoring results are
frozen dataclasses: produced fresh per audit and never mutated.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Enums
# =============================================================================


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Pipeline(str, Enum):
    """How each URL of a batch is audited."""
    FULL = "full"          # discovery -> escalation per surface -> aggregate -> score
    PROMOTED = "promoted"  # lite crawl, promotion gate, then full audit if promoted


class ComprehensionMode(str, Enum):
    MULTI_SURFACE = "bounded-multi-surface"
    SCALE_CONSTRAINED = "scale-constrained"


# =============================================================================
# Scoring results
# =============================================================================


@dataclass(frozen=True)
class SignalResult:
    """One scored signal."""
    name: str
    points: float
    max: float
    notes: str
    raw: Any = None


@dataclass(frozen=True)
class TierScores:
    """Signal points regrouped by tier. Never scored on its own."""
    tier1: float = 0.0
    tier2: float = 0.0
    tier3: float = 0.0

    @property
    def total(self) -> float:
        return self.tier1 + self.tier2 + self.tier3


@dataclass(frozen=True)
class ScoreResult:
    entity_score: int
    band: str
    breakdown: list[SignalResult] = field(default_factory=list)
    tier_scores: TierScores = field(default_factory=TierScores)


# =============================================================================
# Persisted models
# =============================================================================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)


class AuditOutcome(BaseSchema):
    """Result of auditing one URL.

    Batch jobs store the thin form (see `thin()`); single audits return the
    full breakdown.
    """
    success: bool
    url: str
    hostname: str | None = None
    entity_name: str | None = None
    entity_score: int | None = Field(default=None, ge=0, le=100)
    band: str | None = None
    tier_scores: TierScores | None = None
    title: str | None = None
    canonical: str | None = None
    description: str | None = None
    mode: str | None = None
    comprehension_mode: ComprehensionMode | None = None
    degraded_discovery: bool = False
    surfaces: list[str] = Field(default_factory=list)
    promoted: bool | None = None
    latest_iso: str | None = None
    error: str | None = None
    error_kind: str | None = None

    # Full-audit only
    breakdown: list[SignalResult] | None = None
    entity_signals: dict[str, Any] | None = None
    entity_summary: dict[str, Any] | None = None

    audited_at: datetime = Field(default_factory=utcnow)

    def thin(self) -> "AuditOutcome":
        """Drop the heavy diagnostic payload for batch-level storage."""
        return self.model_copy(
            update={"breakdown": None, "entity_signals": None, "entity_summary": None}
        )


class JobError(BaseSchema):
    url: str
    error: str
    kind: str = "unknown"


class Job(BaseSchema):
    """A unit of batch work. `urls` is fixed at creation; `cursor` only grows."""
    id: str
    dataset: str
    vertical: str
    urls: list[str]
    cursor: int = 0
    chunk_size: int = Field(default=5, ge=1)
    pipeline: Pipeline = Pipeline.FULL
    results: list[AuditOutcome] = Field(default_factory=list)
    errors: list[JobError] = Field(default_factory=list)
    status: JobStatus = JobStatus.QUEUED
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_cursor(self) -> "Job":
        if not 0 <= self.cursor <= len(self.urls):
            raise ValueError(f"cursor {self.cursor} outside 0..{len(self.urls)}")
        return self

    @property
    def total(self) -> int:
        return len(self.urls)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.urls)


class DriftSnapshot(BaseSchema):
    """Batch-level aggregate for one vertical at one point in time."""
    vertical: str
    dataset: str
    job_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    totals: dict[str, Any] = Field(default_factory=dict)
    scores: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# Batch responses
# =============================================================================


class BatchProgress(BaseSchema):
    job_id: str
    status: JobStatus
    processed: int
    total: int


class BatchAggregates(BaseSchema):
    audited: int = 0
    failed: int = 0
    scored: int = 0
    avg_entity_score: float | None = None
    bands: dict[str, int] = Field(default_factory=dict)


class BatchStatus(BatchProgress):
    dataset: str
    vertical: str
    pipeline: Pipeline
    aggregates: BatchAggregates
    results: list[AuditOutcome] = Field(default_factory=list)
    errors: list[JobError] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

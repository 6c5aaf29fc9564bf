"""
Core package initialization.
"""

from eei.core.config import Settings, get_settings, settings
from eei.core.models import (
    AuditOutcome,
    BatchAggregates,
    BatchProgress,
    BatchStatus,
    ComprehensionMode,
    DriftSnapshot,
    Job,
    JobError,
    JobStatus,
    Pipeline,
    ScoreResult,
    SignalResult,
    TierScores,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",
    # Enums
    "JobStatus",
    "Pipeline",
    "ComprehensionMode",
    # Models
    "AuditOutcome",
    "BatchAggregates",
    "BatchProgress",
    "BatchStatus",
    "DriftSnapshot",
    "Job",
    "JobError",
    "ScoreResult",
    "SignalResult",
    "TierScores",
]

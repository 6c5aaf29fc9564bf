"""
Drift history endpoints.
"""

from fastapi import APIRouter, Depends, Query

from eei.api.dependencies import get_drift
from eei.db.drift import DriftRecorder
from eei.services.datasets import sanitize_key

router = APIRouter()


@router.get("/{vertical}")
async def get_drift_history(
    vertical: str,
    limit: int | None = Query(default=None, ge=1, le=1000),
    drift: DriftRecorder = Depends(get_drift),
) -> dict:
    """Snapshots for a dataset key, newest first."""
    key = sanitize_key(vertical)
    snapshots = await drift.history(key, limit=limit)
    return {"vertical": key, "count": len(snapshots), "snapshots": snapshots}

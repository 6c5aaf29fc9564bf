"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends

from eei.api.dependencies import AppServices, get_services

router = APIRouter()


@router.get("/api/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy"}


@router.get("/api/ready")
async def readiness_check(services: AppServices = Depends(get_services)) -> dict:
    """Readiness check - includes store connectivity."""
    store_ok = await services.store.ping()
    return {
        "status": "ready" if store_ok else "degraded",
        "store": "connected" if store_ok else "unavailable",
        "pending_drift_writes": services.drift.pending,
    }

"""
Audit API routes.

Provides endpoints for:
- Full single-URL audit with the complete signal breakdown
- Ad-hoc multi-URL audit through the bounded worker pool (thin outcomes)
"""

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from eei.api.dependencies import AppServices, get_services
from eei.core.exceptions import CrawlError, InputError
from eei.core.models import AuditOutcome, Pipeline
from eei.services.pool import audit_many, failed_outcome, summarize
from eei.services.url_utils import normalize_input_url

logger = structlog.get_logger()
router = APIRouter()


class PoolAuditRequest(BaseModel):
    urls: list[str] = Field(..., description="URLs to audit")
    pipeline: Pipeline = Pipeline.FULL


class PoolAuditResponse(BaseModel):
    summary: dict
    results: list[AuditOutcome]


@router.get("", response_model=AuditOutcome)
async def audit_url(
    url: str | None = Query(default=None, description="URL to audit"),
    services: AppServices = Depends(get_services),
):
    """
    Audit one URL.

    A crawl failure is reported as an unsuccessful outcome (HTTP 200); only a
    missing or malformed URL is a 400.
    """
    target = normalize_input_url(url)
    try:
        return await services.auditor.audit(target, Pipeline.FULL)
    except CrawlError as e:
        logger.info("Audit failed", url=target[:80], kind=e.kind, error=e.message)
        return failed_outcome(target, e)


@router.post("/batch", response_model=PoolAuditResponse)
async def audit_batch(
    request: PoolAuditRequest,
    services: AppServices = Depends(get_services),
):
    """Audit several URLs concurrently without creating a job."""
    settings = services.settings
    urls = [u.strip() for u in request.urls if u and u.strip()]
    if not urls:
        raise InputError("No URLs provided")
    if len(urls) > settings.pool_max_urls:
        raise InputError(
            f"Too many URLs (max {settings.pool_max_urls})",
            details={"count": len(urls), "max": settings.pool_max_urls},
        )

    async def audit_one(url: str) -> AuditOutcome:
        return await services.auditor.audit(url, request.pipeline)

    outcomes = await audit_many(urls, audit_one, concurrency=settings.pool_concurrency)
    thin = [o.thin() for o in outcomes]
    return PoolAuditResponse(summary=summarize(thin), results=thin)

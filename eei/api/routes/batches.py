"""
Batch API routes.

Provides endpoints for:
- Starting a batch job from a dataset
- Advancing a job by one chunk (for callers that drive batches themselves)
- Reading job status with results, errors and aggregates
"""

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from eei.api.dependencies import AppServices, get_orchestrator, get_services
from eei.core.models import BatchProgress, BatchStatus, JobStatus, Pipeline
from eei.jobs.batch import BatchOrchestrator
from eei.jobs.batch_job import ADVANCE_FUNCTION

logger = structlog.get_logger()
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class StartBatchRequest(BaseModel):
    """Request to start a batch over a dataset."""
    dataset: str = Field(..., min_length=1, description="Dataset key", examples=["core-web"])
    pipeline: Pipeline = Field(default=Pipeline.FULL, description="Per-URL audit pipeline")
    chunk_size: int | None = Field(default=None, ge=1, le=100)


class StartBatchResponse(BaseModel):
    job_id: str
    dataset: str
    vertical: str
    total_urls: int
    status: JobStatus
    enqueued: bool = False


class AdvanceResponse(BatchProgress):
    incomplete: bool


# ============================================================================
# Endpoints
# ============================================================================

@router.post("", response_model=StartBatchResponse, status_code=status.HTTP_201_CREATED)
async def start_batch(
    request: StartBatchRequest,
    services: AppServices = Depends(get_services),
):
    """
    Create a batch job.

    When a worker queue is configured the job is enqueued and advanced in
    the background; otherwise the caller drives it through /advance.
    """
    job = await services.orchestrator.start_batch(
        request.dataset, pipeline=request.pipeline, chunk_size=request.chunk_size
    )

    enqueued = False
    if services.arq_pool is not None:
        await services.arq_pool.enqueue_job(ADVANCE_FUNCTION, job.id)
        enqueued = True

    logger.info("Batch started", job_id=job.id, dataset=job.dataset, total=job.total, enqueued=enqueued)
    return StartBatchResponse(
        job_id=job.id,
        dataset=job.dataset,
        vertical=job.vertical,
        total_urls=job.total,
        status=job.status,
        enqueued=enqueued,
    )


@router.post("/{job_id}/advance", response_model=AdvanceResponse)
async def advance_batch(
    job_id: str,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Advance a job by one chunk and report progress."""
    result = await orchestrator.advance(job_id)
    return AdvanceResponse(**result.progress().model_dump(), incomplete=result.incomplete)


@router.get("/{job_id}", response_model=BatchStatus)
async def get_batch_status(
    job_id: str,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Job status. Per-URL failures are part of the payload, never an HTTP error."""
    return await orchestrator.get_status(job_id)

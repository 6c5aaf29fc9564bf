"""
Batch Job - advance one chunk, then re-enqueue until the job completes.

Each arq invocation is short (bounded by `time_budget_seconds`); long
batches are a chain of invocations linked through the persisted cursor.
"""

from datetime import timedelta

import structlog

from eei.core.exceptions import JobConflictError, JobNotFoundError

logger = structlog.get_logger()

ADVANCE_FUNCTION = "advance_batch_job"


async def advance_batch_job(ctx: dict, job_id: str) -> dict:
    """
    Advance a batch job by one chunk.

    Args:
        ctx: ARQ context (holds the orchestrator built at startup)
        job_id: batch job id

    Returns:
        Progress dict: job_id, status, processed, total
    """
    log = logger.bind(job_id=job_id, job_type="batch")
    orchestrator = ctx["orchestrator"]

    try:
        result = await orchestrator.advance(job_id)
    except JobNotFoundError:
        log.error("Batch job not found or expired")
        return {"job_id": job_id, "status": "error", "message": "Job not found"}
    except JobConflictError as e:
        # Another invocation owns the job and will re-enqueue it itself.
        log.info("Batch job busy, skipping", reason=e.message)
        return {"job_id": job_id, "status": "busy"}

    progress = result.progress()

    if result.incomplete:
        delay = ctx["settings"].requeue_delay_seconds
        await ctx["redis"].enqueue_job(
            ADVANCE_FUNCTION,
            job_id,
            _defer_by=timedelta(seconds=delay),
        )
        log.info("Batch job re-enqueued", processed=progress.processed, total=progress.total)
    else:
        log.info("Batch job completed", total=progress.total)

    return progress.model_dump(mode="json")

"""
Jobs layer for ARQ worker orchestration.

This package contains the Batch Orchestrator, the ARQ worker configuration
and the job functions that drive batches to completion.
"""

import structlog
from arq.connections import RedisSettings

from eei.core.config import settings
from eei.core.logging import configure_logging
from eei.db import DriftRecorder, JobStore, RedisStore
from eei.jobs.batch import AdvanceResult, BatchOrchestrator, UrlAuditor, aggregate_results
from eei.jobs.batch_job import ADVANCE_FUNCTION, advance_batch_job
from eei.services.audit import Auditor
from eei.services.crawl.static import build_client
from eei.services.datasets import JsonDatasetLoader

logger = structlog.get_logger()


async def startup(ctx):
    """Initialize the worker context."""
    configure_logging(json_logs=not settings.debug, log_level="DEBUG" if settings.debug else "INFO")
    logger.info("Starting up worker...")

    store = RedisStore.from_url(str(settings.redis_url))
    job_store = JobStore(store, ttl=settings.job_ttl_seconds, lease_seconds=settings.job_lease_seconds)
    client = build_client(settings)

    ctx["settings"] = settings
    ctx["store"] = store
    ctx["http_client"] = client
    ctx["drift"] = DriftRecorder(job_store, max_snapshots=settings.drift_max_snapshots)
    ctx["orchestrator"] = BatchOrchestrator(
        job_store,
        Auditor.from_settings(client, settings),
        ctx["drift"],
        settings,
        datasets=JsonDatasetLoader(settings.datasets_path),
    )
    logger.info("Worker startup complete.")


async def shutdown(ctx):
    """Cleanup the worker context."""
    logger.info("Shutting down worker...")
    await ctx["drift"].drain()
    await ctx["http_client"].aclose()
    await ctx["store"].close()
    logger.info("Worker shutdown complete.")


class WorkerSettings:
    """ARQ worker settings."""

    functions = [advance_batch_job]
    redis_settings = RedisSettings.from_dsn(str(settings.redis_url))
    on_startup = startup
    on_shutdown = shutdown
    handle_signals = False

    # Each invocation is already time-fenced; this caps a hung one.
    job_timeout = int(settings.time_budget_seconds + settings.entity_timeout_seconds + 30)


__all__ = [
    "ADVANCE_FUNCTION",
    "AdvanceResult",
    "BatchOrchestrator",
    "UrlAuditor",
    "WorkerSettings",
    "advance_batch_job",
    "aggregate_results",
]

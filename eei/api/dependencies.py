"""
Application services and FastAPI dependencies.

All long-lived collaborators are built once per app and hung off
`app.state.services`; routes receive them through the getters below.
"""

from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import Request

from eei.core.config import Settings
from eei.db import DriftRecorder, JobStore, KeyValueStore, RedisStore
from eei.jobs.batch import BatchOrchestrator, UrlAuditor
from eei.services.audit import Auditor
from eei.services.crawl.static import build_client
from eei.services.datasets import JsonDatasetLoader


@dataclass
class AppServices:
    settings: Settings
    store: KeyValueStore
    job_store: JobStore
    drift: DriftRecorder
    auditor: UrlAuditor
    orchestrator: BatchOrchestrator
    http_client: httpx.AsyncClient | None = None
    arq_pool: Any = None  # arq ArqRedis when batches are driven by the worker

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: KeyValueStore | None = None,
        auditor: UrlAuditor | None = None,
        arq_pool: Any = None,
    ) -> "AppServices":
        """Wire the default stack; tests pass their own store and auditor."""
        store = store or RedisStore.from_url(str(settings.redis_url))
        job_store = JobStore(
            store, ttl=settings.job_ttl_seconds, lease_seconds=settings.job_lease_seconds
        )
        drift = DriftRecorder(job_store, max_snapshots=settings.drift_max_snapshots)

        http_client = None
        if auditor is None:
            http_client = build_client(settings)
            auditor = Auditor.from_settings(http_client, settings)

        orchestrator = BatchOrchestrator(
            job_store,
            auditor,
            drift,
            settings,
            datasets=JsonDatasetLoader(settings.datasets_path),
        )
        return cls(
            settings=settings,
            store=store,
            job_store=job_store,
            drift=drift,
            auditor=auditor,
            orchestrator=orchestrator,
            http_client=http_client,
            arq_pool=arq_pool,
        )

    async def close(self) -> None:
        await self.drift.drain()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.arq_pool is not None:
            await self.arq_pool.close()
        await self.store.close()


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_orchestrator(request: Request) -> BatchOrchestrator:
    return get_services(request).orchestrator


def get_auditor(request: Request) -> UrlAuditor:
    return get_services(request).auditor


def get_drift(request: Request) -> DriftRecorder:
    return get_services(request).drift

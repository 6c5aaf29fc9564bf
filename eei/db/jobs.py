"""
Job Store.

Persists Job records as whole JSON documents under `job:{id}` with a TTL.
Writes are read-modify-write with an optimistic version check; `lease()`
gives one invocation exclusive ownership of a job while it advances.
Drift history lives in per-vertical append-only lists under `drift:{key}`.
"""

import json
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from pydantic import BaseModel

from eei.core.exceptions import JobConflictError, JobNotFoundError
from eei.core.models import Job, utcnow
from eei.db.store import KeyValueStore

logger = structlog.get_logger()

JobMutator = Callable[[Job], Job | None]


def job_key(job_id: str) -> str:
    return f"job:{job_id}"


def lease_key(job_id: str) -> str:
    return f"job-lease:{job_id}"


def drift_key(vertical: str) -> str:
    return f"drift:{vertical}"


class JobStore:
    """Create, read and version-checked update of Job records."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl: int = 60 * 60 * 24,
        lease_seconds: int = 120,
    ):
        """
        Args:
            store: key-value backend
            ttl: lifetime of job records in seconds (refreshed on every write)
            lease_seconds: lease expiry, so a crashed holder cannot block a job forever
        """
        self.store = store
        self.ttl = ttl
        self.lease_seconds = lease_seconds
        self.log = logger.bind(component="JobStore")

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    async def create(self, job: Job) -> Job:
        created = await self.store.set_if_absent(
            job_key(job.id), job.model_dump_json(), ttl=self.ttl
        )
        if not created:
            raise JobConflictError(f"Job {job.id} already exists", details={"job_id": job.id})
        self.log.info("Job created", job_id=job.id, dataset=job.dataset, total=job.total)
        return job

    async def get(self, job_id: str) -> Job | None:
        raw = await self.store.get(job_key(job_id))
        if raw is None:
            return None
        return Job.model_validate_json(raw)

    async def require(self, job_id: str) -> Job:
        job = await self.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}", details={"job_id": job_id})
        return job

    async def save(self, job: Job) -> Job:
        """
        Persist a modified job.

        The stored version must still equal `job.version`; the written record
        carries version + 1.

        Raises:
            JobNotFoundError: record missing or expired
            JobConflictError: stale version, changed URL list or cursor moved backwards
        """
        stored = await self.require(job.id)

        if stored.version != job.version:
            raise JobConflictError(
                "Job was modified concurrently",
                details={"job_id": job.id, "stored": stored.version, "given": job.version},
            )
        if stored.urls != job.urls:
            raise JobConflictError("Job URLs are immutable", details={"job_id": job.id})
        if job.cursor < stored.cursor:
            raise JobConflictError(
                "Job cursor cannot move backwards",
                details={"job_id": job.id, "stored": stored.cursor, "given": job.cursor},
            )

        updated = job.model_copy(update={"version": job.version + 1, "updated_at": utcnow()})
        await self.store.set(job_key(job.id), updated.model_dump_json(), ttl=self.ttl)
        return updated

    async def update(self, job_id: str, mutator: JobMutator) -> Job:
        """Apply `mutator` to a copy of the stored job and save it."""
        job = await self.require(job_id)
        working = job.model_copy(deep=True)
        result = mutator(working)
        return await self.save(result if result is not None else working)

    @asynccontextmanager
    async def lease(self, job_id: str) -> AsyncIterator[None]:
        """
        Exclusive ownership of a job for one invocation.

        Raises:
            JobConflictError: another invocation holds the lease
        """
        token = uuid.uuid4().hex
        key = lease_key(job_id)
        if not await self.store.set_if_absent(key, token, ttl=self.lease_seconds):
            raise JobConflictError(
                "Job is being advanced by another invocation", details={"job_id": job_id}
            )
        try:
            yield
        finally:
            # Only release our own lease; it may have expired and been re-taken.
            if await self.store.get(key) == token:
                await self.store.delete(key)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def append_snapshot(
        self,
        key: str,
        value: BaseModel | dict[str, Any],
        max_items: int = 0,
    ) -> None:
        """Prepend a snapshot to the key's history, keeping at most `max_items` (0 = all)."""
        raw = value.model_dump_json() if isinstance(value, BaseModel) else json.dumps(value, default=str)
        await self.store.push_front(drift_key(key), raw)
        if max_items > 0:
            await self.store.trim(drift_key(key), 0, max_items - 1)

    async def list_snapshots(self, key: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Snapshots for a key, newest first."""
        stop = -1 if not limit else limit - 1
        raw_items = await self.store.list_range(drift_key(key), 0, stop)
        snapshots = []
        for raw in raw_items:
            try:
                snapshots.append(json.loads(raw))
            except json.JSONDecodeError:
                self.log.warning("Skipping unreadable snapshot", key=key)
        return snapshots

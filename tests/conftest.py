"""
Pytest configuration and fixtures for EEI auditor tests.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from eei.api.dependencies import AppServices
from eei.api.main import create_app
from eei.core.config import Settings
from eei.db import DriftRecorder, JobStore, MemoryStore
from tests.factories import DATA_DIR, ScriptedAuditor


@pytest.fixture
def settings() -> Settings:
    """Settings with zero cooldown, short timeouts and rendering off."""
    return Settings(
        render_enabled=False,
        static_retries=0,
        cooldown_seconds=0,
        time_budget_seconds=50,
        entity_timeout_seconds=5,
        chunk_size=10,
        drift_max_snapshots=0,
        datasets_path=str(DATA_DIR),
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def job_store(memory_store: MemoryStore) -> JobStore:
    return JobStore(memory_store, ttl=3600, lease_seconds=60)


@pytest.fixture
def drift(job_store: JobStore) -> DriftRecorder:
    return DriftRecorder(job_store)


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings, memory_store: MemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """API client over in-memory services and a scripted auditor."""
    auditor = ScriptedAuditor()
    services = AppServices.build(settings, store=memory_store, auditor=auditor)
    app = create_app(services)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        ac.services = services  # type: ignore[attr-defined]
        yield ac

    await services.drift.drain()

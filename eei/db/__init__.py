"""
Persistence package: key-value stores, Job Store and Drift Recorder.
"""

from eei.db.drift import DriftRecorder, build_snapshot
from eei.db.jobs import JobStore, drift_key, job_key, lease_key
from eei.db.store import KeyValueStore, MemoryStore, RedisStore, StoreError

__all__ = [
    # Stores
    "KeyValueStore",
    "RedisStore",
    "MemoryStore",
    "StoreError",
    # Jobs
    "JobStore",
    "job_key",
    "lease_key",
    "drift_key",
    # Drift
    "DriftRecorder",
    "build_snapshot",
]

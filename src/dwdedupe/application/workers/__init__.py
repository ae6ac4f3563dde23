"""Background workers."""

from dwdedupe.application.workers.dedupe_sync_worker import (
    BatchSyncReport,
    DedupeSyncWorker,
    SyncOutcome,
)

__all__ = ["BatchSyncReport", "DedupeSyncWorker", "SyncOutcome"]

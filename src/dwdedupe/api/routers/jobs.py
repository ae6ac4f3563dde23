# Hey future me - /jobs/update is what the external scheduler hits once a week (after
# Spotify refreshes Discover Weekly on Monday). It blocks until every user has been tried
# and answers with the per-user report. Unauthenticated like the rest of the job surface:
# keep it off the public internet or put it behind the proxy's auth.
"""Batch job endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from dwdedupe.api.dependencies import get_sync_worker
from dwdedupe.application.workers import DedupeSyncWorker

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.api_route("/update", methods=["GET", "POST"])
async def run_update(
    worker: DedupeSyncWorker = Depends(get_sync_worker),
) -> dict[str, Any]:
    """Sync every stored user and return the batch report."""
    report = await worker.run_batch()
    return report.to_dict()


@router.get("/status")
async def job_status(
    worker: DedupeSyncWorker = Depends(get_sync_worker),
) -> dict[str, Any]:
    """Background loop state and the last batch report."""
    return worker.get_status()

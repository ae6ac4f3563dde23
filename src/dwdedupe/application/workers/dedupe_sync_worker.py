# Hey future me - this worker runs the weekly sync for EVERY stored user.
#
# Two ways in:
# 1. run_batch() on demand (GET|POST /jobs/update, e.g. from an external cron)
# 2. start() spawns a background loop that calls run_batch() every interval_seconds
#    (off by default, SYNC_WORKER_ENABLED=true turns it on)
#
# Per user, in order: lock → reload → refresh token → save → reconcile → save.
# The whole thing is bounded by SYNC_USER_TIMEOUT_SECONDS. Anything that goes wrong
# for one user is caught, logged and recorded in the report - the next user still runs.
# Users are processed one after another, never concurrently.
"""Background worker for the Discover Weekly batch sync."""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from dwdedupe.domain.entities import User, utc_now
from dwdedupe.domain.exceptions import AuthError
from dwdedupe.infrastructure.observability import log_worker_health, set_correlation_id
from dwdedupe.infrastructure.persistence import UserRepository

if TYPE_CHECKING:
    from dwdedupe.application.services import (
        DedupeSyncService,
        SpotifyAuthService,
        UserLockRegistry,
    )
    from dwdedupe.config import Settings
    from dwdedupe.infrastructure.persistence import Database

logger = logging.getLogger(__name__)

STATUS_SYNCED = "synced"
STATUS_FAILED = "failed"
STATUS_AUTH_FAILED = "auth_failed"
STATUS_TIMED_OUT = "timed_out"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one user's sync inside a batch run."""

    user_id: str
    status: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SYNCED

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "status": self.status, "error": self.error}


@dataclass
class BatchSyncReport:
    """Per-user outcomes of one batch run."""

    started_at: datetime
    finished_at: datetime | None = None
    outcomes: list[SyncOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if not outcome.ok and outcome.status != STATUS_SKIPPED
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total": len(self.outcomes),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class DedupeSyncWorker:
    """Runs reconcile for every stored user, one at a time.

    On a per-user failure:
    - Logs the error with the user's correlation id
    - Records it in the BatchSyncReport
    - Moves on to the next user
    """

    def __init__(
        self,
        db: "Database",
        auth_service: "SpotifyAuthService",
        sync_service: "DedupeSyncService",
        locks: "UserLockRegistry",
        settings: "Settings",
    ) -> None:
        """Initialize the batch sync worker.

        Args:
            db: Database instance for creating sessions
            auth_service: Refreshes credentials before each sync
            sync_service: Runs the actual reconcile
            locks: Per-user locks shared with the interactive sync route
            settings: Application settings (timeout, interval)
        """
        self.db = db
        self._auth = auth_service
        self._sync = sync_service
        self._locks = locks
        self.settings = settings
        self.interval_seconds = settings.sync.interval_seconds
        self.user_timeout_seconds = settings.sync.user_timeout_seconds

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._last_report: BatchSyncReport | None = None

        self._cycles_completed: int = 0
        self._errors_total: int = 0
        self._start_time: float = time.time()

    # =========================================================================
    # SYNC
    # =========================================================================

    async def run_batch(self) -> BatchSyncReport:
        """Sync every stored user and report per-user outcomes."""
        report = BatchSyncReport(started_at=utc_now())

        async with self.db.session_scope() as session:
            user_ids = [user.id for user in await UserRepository(session).list_all()]

        logger.info("dedupe_worker.batch.started", extra={"user_count": len(user_ids)})

        for user_id in user_ids:
            outcome = await self._sync_one(user_id)
            report.outcomes.append(outcome)

        report.finished_at = utc_now()
        self._last_report = report
        self._errors_total += report.failed

        logger.info(
            "dedupe_worker.batch.completed",
            extra={
                "user_count": len(report.outcomes),
                "succeeded": report.succeeded,
                "failed": report.failed,
            },
        )
        return report

    async def sync_user(self, user_id: str, refresh: bool = True) -> User | None:
        """Reconcile one user under their lock and persist the result.

        Shared by the batch run and POST /sync. Errors propagate.

        Args:
            user_id: Spotify user id
            refresh: Refresh credentials first (the web layer already did)

        Returns:
            The updated user, or None if the user no longer exists
        """
        async with self._locks.lock_for(user_id):
            user = await self._load(user_id)
            if user is None:
                return None

            if refresh:
                user = await self._auth.refresh_credentials(user)
                await self._save(user)

            user = await self._sync.reconcile(user)
            await self._save(user)
            return user

    async def _sync_one(self, user_id: str) -> SyncOutcome:
        set_correlation_id(f"batch-{user_id}")
        try:
            async with asyncio.timeout(self.user_timeout_seconds):
                user = await self.sync_user(user_id)
        except TimeoutError:
            logger.error(
                "dedupe_worker.user_timed_out",
                extra={"user_id": user_id, "timeout_seconds": self.user_timeout_seconds},
            )
            return SyncOutcome(
                user_id,
                STATUS_TIMED_OUT,
                f"Sync exceeded {self.user_timeout_seconds}s",
            )
        except AuthError as e:
            logger.warning(
                "dedupe_worker.user_auth_failed",
                extra={"user_id": user_id, "error": e.message},
            )
            return SyncOutcome(user_id, STATUS_AUTH_FAILED, e.message)
        except Exception as e:
            # One user's failure must not stop the batch - record it and move on
            logger.error(
                "dedupe_worker.user_failed",
                extra={
                    "user_id": user_id,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
                exc_info=True,
            )
            return SyncOutcome(user_id, STATUS_FAILED, f"{type(e).__name__}: {e}")

        if user is None:
            return SyncOutcome(user_id, STATUS_SKIPPED, "User no longer exists")
        return SyncOutcome(user_id, STATUS_SYNCED)

    async def _load(self, user_id: str) -> User | None:
        async with self.db.session_scope() as session:
            return await UserRepository(session).get(user_id)

    async def _save(self, user: User) -> None:
        async with self.db.session_scope() as session:
            await UserRepository(session).save(user)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the periodic background loop. Safe to call twice."""
        if self._running:
            logger.warning("dedupe_worker.already_running")
            return

        self._running = True
        self._start_time = time.time()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "worker.started",
            extra={"worker": "dedupe_sync", "interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Stop the background loop and wait for it to exit."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info(
            "worker.stopped",
            extra={
                "worker": "dedupe_sync",
                "cycles_completed": self._cycles_completed,
                "errors_total": self._errors_total,
                "uptime_seconds": int(time.time() - self._start_time),
            },
        )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_batch()
                self._cycles_completed += 1
                log_worker_health(
                    logger,
                    "dedupe_sync",
                    self._cycles_completed,
                    self._errors_total,
                    time.time() - self._start_time,
                )
            except Exception as e:
                # Listing users failed (DB down?) - keep the loop alive, try next interval
                self._errors_total += 1
                logger.error(
                    "dedupe_worker.cycle_failed",
                    extra={"error_type": type(e).__name__, "error": str(e)},
                    exc_info=True,
                )

            await asyncio.sleep(self.interval_seconds)

    def get_status(self) -> dict[str, Any]:
        """Current worker state plus the summary of the last batch run."""
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "cycles_completed": self._cycles_completed,
            "errors_total": self._errors_total,
            "last_report": self._last_report.to_dict() if self._last_report else None,
        }

"""Shared logging helpers.

USAGE:
    from dwdedupe.infrastructure.observability.logger_template import (
        log_operation,
        log_worker_health,
    )

    async with log_operation(logger, "dedupe_sync.user", user_id="alice"):
        await sync_user()

    log_worker_health(logger, "dedupe_sync", cycles_completed=10, errors_total=2, uptime_seconds=3600)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, wrap anything you want timed in this. It emits {operation}.started, then either
# {operation}.completed or {operation}.failed with duration_ms. Failures are logged with the
# traceback and re-raised, the caller still decides what to do with them.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Log operation start/end with automatic timing.

    Args:
        logger: Logger to emit on
        operation: Operation name (e.g., "dedupe_sync.user")
        **context: Extra fields attached to every emitted record
    """
    start = time.monotonic()
    logger.info(f"{operation}.started", extra=context)
    try:
        yield
    except Exception as e:
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": int((time.monotonic() - start) * 1000),
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise
    logger.info(
        f"{operation}.completed",
        extra={**context, "duration_ms": int((time.monotonic() - start) * 1000)},
    )


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in a consistent format.

    Args:
        logger: Logger instance
        worker_name: Worker identifier (e.g., "dedupe_sync")
        cycles_completed: Total cycles completed since start
        errors_total: Total per-user failures since start
        uptime_seconds: Seconds since worker started
        extra_stats: Optional additional fields
    """
    log_data: dict[str, Any] = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)

"""Observability infrastructure for structured logging."""

from dwdedupe.infrastructure.observability.logger_template import (
    log_operation,
    log_worker_health,
)
from dwdedupe.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from dwdedupe.infrastructure.observability.middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "log_operation",
    "log_worker_health",
    "set_correlation_id",
]

"""Process-wide logging setup: one stdout handler, correlation ids, text or JSON output."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Loggers that chat at INFO about things we already log ourselves (every Spotify request,
# every access line, every sqlite cursor).
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")

# Hey future me, the correlation id is what ties a request (or one user's batch sync) together
# across every log line it produces. contextvars is asyncio-safe: each task gets its own copy,
# so the batch worker can tag each user's sync without leaking into the next one. Default ""
# covers startup logs and anything outside a request.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def get_correlation_id() -> str:
    """Correlation id of the current task ("" outside a request or batch user)."""
    return correlation_id_var.get()


# Passing None generates a fresh UUID. Call once per request or per batch user, never per log call.
def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current task and return it."""
    value = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current task's correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that prints exception chains root cause first, our own frames only.

    Example output:
    ERROR │ dwdedupe.application.workers.dedupe_sync_worker:142 │ dedupe_worker.user_failed
    ╰─► ConnectError: All connection attempts failed
    ╰─► ApiError: Spotify API error 502 on GET .../playlists/abc
        File "dedupe_sync_service.py", line 97, in _resolve_target
          detail = await plugin.get_playlist(user.dw_dedupe_id)
    """

    package_marker = "dwdedupe"

    @staticmethod
    def _chain(exc: BaseException) -> list[BaseException]:
        seen: list[BaseException] = []
        current: BaseException | None = exc
        while current is not None and current not in seen:
            seen.append(current)
            current = current.__cause__ or current.__context__
        return seen[::-1]

    def _own_frames(self, exc: BaseException) -> list[str]:
        out: list[str] = []
        for frame in traceback.extract_tb(exc.__traceback__):
            if "/site-packages/" in frame.filename or self.package_marker not in frame.filename:
                continue
            out.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
            if frame.line:
                out.append(f"      {frame.line.strip()}")
        return out

    def formatException(self, ei: Any) -> str:
        exc = ei[1]
        if exc is None:
            return ""
        blocks: list[str] = []
        for link in self._chain(exc):
            blocks.append(f"╰─► {type(link).__name__}: {link}")
            blocks.extend(self._own_frames(link))
        return "\n".join(blocks)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per record: level, logger, source location, correlation id, extras."""

    def __init__(self, *args: Any, app_name: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.app_name = app_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            function=record.funcName,
            line=record.lineno,
        )
        if self.app_name:
            log_record["app"] = self.app_name
        if getattr(record, "correlation_id", ""):
            log_record["correlation_id"] = record.correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def _build_formatter(json_format: bool, app_name: str) -> logging.Formatter:
    if json_format:
        return CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S", app_name=app_name)
    return CompactExceptionFormatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S")


# Listen future me, call this ONCE at startup (the app lifespan does it). It wipes root
# handlers first so tests and reloads don't stack duplicate handlers.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "dwdedupe",
) -> None:
    """Route every logger to a single stdout handler.

    Args:
        log_level: Root level name; unknown names fall back to INFO
        json_format: JSON lines (production) instead of the compact text format
        app_name: Tag added to every JSON record
    """
    level = logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(_build_formatter(json_format, app_name))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "logging.configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )

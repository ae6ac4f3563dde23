"""Application lifecycle management for startup and shutdown tasks.

Startup builds every long-lived object once and parks it on app.state:

    db            Database (tables auto-created for local SQLite)
    spotify       SpotifyClient (one shared httpx.AsyncClient)
    sync_service  DedupeSyncService
    auth_service  SpotifyAuthService
    user_locks    UserLockRegistry
    sync_worker   DedupeSyncWorker (background loop only if SYNC_WORKER_ENABLED)

Shutdown tears them down in reverse order.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.engine import make_url

from dwdedupe.application.services import (
    DedupeSyncService,
    SpotifyAuthService,
    UserLockRegistry,
)
from dwdedupe.application.workers import DedupeSyncWorker
from dwdedupe.config import Settings
from dwdedupe.infrastructure.integrations.spotify_client import SpotifyClient
from dwdedupe.infrastructure.observability import configure_logging
from dwdedupe.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, SQLite won't create missing parent directories for the .db file, and the
# error you get instead ("unable to open database file") is useless. Make them up front.
# In-memory and non-SQLite URLs are left alone.
def _ensure_sqlite_directory(settings: Settings) -> None:
    url = make_url(settings.database.url)
    if not url.drivername.startswith("sqlite") or not url.database:
        return
    if url.database == ":memory:":
        return
    parent = Path(url.database).parent
    if str(parent) not in ("", "."):
        parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Ensured SQLite parent directory exists: %s", parent)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Reads the Settings and the optional Spotify transport that create_app()
    stored on app.state.
    """
    settings: Settings = app.state.settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.log_json,
        app_name="dwdedupe",
    )
    logger.info(
        "app.starting",
        extra={"environment": settings.environment, "base_url": settings.base_url},
    )

    _ensure_sqlite_directory(settings)
    db = Database(settings.database)
    if settings.database.auto_create:
        await db.create_tables()
    app.state.db = db

    spotify = SpotifyClient(
        settings.spotify,
        settings.redirect_uri,
        transport=getattr(app.state, "spotify_transport", None),
    )
    app.state.spotify = spotify

    sync_service = DedupeSyncService(spotify, settings)
    auth_service = SpotifyAuthService(spotify, settings, sync_service)
    locks = UserLockRegistry()
    worker = DedupeSyncWorker(db, auth_service, sync_service, locks, settings)

    app.state.sync_service = sync_service
    app.state.auth_service = auth_service
    app.state.user_locks = locks
    app.state.sync_worker = worker

    try:
        if settings.sync.worker_enabled:
            await worker.start()
        logger.info("app.started", extra={"worker_enabled": settings.sync.worker_enabled})
        yield
    finally:
        logger.info("app.stopping")
        if settings.sync.worker_enabled:
            await worker.stop()
        await spotify.close()
        await db.close()
        logger.info("app.stopped")

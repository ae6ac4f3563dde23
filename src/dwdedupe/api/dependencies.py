"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import Depends, Request

from dwdedupe.api.templating import SESSION_USER_KEY
from dwdedupe.application.services import DedupeSyncService, SpotifyAuthService
from dwdedupe.application.workers import DedupeSyncWorker
from dwdedupe.config import Settings
from dwdedupe.domain.entities import User
from dwdedupe.domain.exceptions import AuthenticationError
from dwdedupe.infrastructure.persistence import Database, UserRepository

logger = logging.getLogger(__name__)


# Hey future me, everything long-lived (db, client, services, worker) is built ONCE in the
# lifespan (infrastructure/lifecycle.py) and parked on app.state. These getters just hand it out.
def get_app_settings(request: Request) -> Settings:
    return cast(Settings, request.app.state.settings)


def get_database(request: Request) -> Database:
    return cast(Database, request.app.state.db)


def get_auth_service(request: Request) -> SpotifyAuthService:
    return cast(SpotifyAuthService, request.app.state.auth_service)


def get_sync_service(request: Request) -> DedupeSyncService:
    return cast(DedupeSyncService, request.app.state.sync_service)


def get_sync_worker(request: Request) -> DedupeSyncWorker:
    return cast(DedupeSyncWorker, request.app.state.sync_worker)


# Listen up, every authenticated page goes through here: load the user named in the
# session cookie, refresh their Spotify token, persist the new credentials. We use short
# session_scope()s instead of the request-scoped session: POST /sync writes the same row
# from the worker's own sessions, and SQLite would block on an open write transaction.
async def get_current_user(
    request: Request,
    db: Database = Depends(get_database),
    auth: SpotifyAuthService = Depends(get_auth_service),
) -> User:
    """Signed-in user with freshly refreshed credentials.

    Raises:
        AuthenticationError: No user in the session (or the stored user is gone)
        AuthError: Spotify refused to refresh the token
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise AuthenticationError("No user in session")

    async with db.session_scope() as session:
        user = await UserRepository(session).get(user_id)
    if user is None:
        logger.warning("auth.session_user_missing", extra={"user_id": user_id})
        request.session.clear()
        raise AuthenticationError(f"User {user_id} no longer exists")

    user = await auth.refresh_credentials(user)
    async with db.session_scope() as session:
        await UserRepository(session).save(user)
    return user

"""Signed-in pages: home, history, latest repeats and the "sync now" action."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from dwdedupe.api.dependencies import (
    get_app_settings,
    get_current_user,
    get_sync_service,
    get_sync_worker,
)
from dwdedupe.api.templating import templates
from dwdedupe.application.services import DedupeSyncService
from dwdedupe.application.workers import DedupeSyncWorker
from dwdedupe.config import Settings
from dwdedupe.domain.entities import User
from dwdedupe.domain.exceptions import AuthenticationError
from dwdedupe.infrastructure.observability import log_operation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


@router.get("/")
async def home(
    request: Request,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    return templates.TemplateResponse(
        request,
        "home.html",
        context={
            "user": user,
            "playlist_name": settings.dedupe_playlist_name,
            "history_count": len(user.track_ids),
            "latest_count": len(user.latest_repeat_ids),
            "repeat_count": len(user.repeat_ids),
        },
    )


# Hey future me - same lock + deadline as the batch worker, so clicking "sync now" while
# the weekly job is busy with this user just waits for it instead of racing it.
@router.post("/sync")
async def sync_now(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    worker: DedupeSyncWorker = Depends(get_sync_worker),
) -> Response:
    async with log_operation(logger, "pages.sync_now", user_id=user.id):
        async with asyncio.timeout(settings.sync.user_timeout_seconds):
            synced = await worker.sync_user(user.id, refresh=False)
    if synced is None:
        raise AuthenticationError(f"User {user.id} no longer exists")
    return RedirectResponse("/latest", status_code=303)


@router.get("/history")
async def history(
    request: Request,
    user: User = Depends(get_current_user),
    sync: DedupeSyncService = Depends(get_sync_service),
) -> Response:
    """Every track Discover Weekly has ever shown this user."""
    tracks = await sync.describe_tracks(user, user.track_ids)
    return templates.TemplateResponse(
        request,
        "tracks.html",
        context={
            "user": user,
            "title": "History",
            "description": "Every track Discover Weekly has shown you so far.",
            "tracks": tracks,
        },
    )


@router.get("/latest")
async def latest(
    request: Request,
    user: User = Depends(get_current_user),
    sync: DedupeSyncService = Depends(get_sync_service),
) -> Response:
    """Repeats filtered out by the most recent sync."""
    tracks = await sync.describe_tracks(user, user.latest_repeat_ids)
    return templates.TemplateResponse(
        request,
        "tracks.html",
        context={
            "user": user,
            "title": "Latest repeats",
            "description": "Tracks removed from this week's Discover Weekly because you had seen them before.",
            "tracks": tracks,
        },
    )

"""Application services."""

from dwdedupe.application.services.dedupe_sync_service import DedupeSyncService
from dwdedupe.application.services.playlist_locator import PlaylistLocator
from dwdedupe.application.services.spotify_auth_service import (
    AuthorizationRequest,
    SpotifyAuthService,
)
from dwdedupe.application.services.user_locks import UserLockRegistry

__all__ = [
    "AuthorizationRequest",
    "DedupeSyncService",
    "PlaylistLocator",
    "SpotifyAuthService",
    "UserLockRegistry",
]

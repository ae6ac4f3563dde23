"""Discover Weekly → DW Dedupe reconciliation.

Hey future me - this is THE heart of the app. One reconcile() call:

1. Resolve Discover Weekly (only searched for if the user has no id yet)
2. Fetch its tracks → D
3. R = D ∩ user.track_ids (repeats)
4. N = D - R (novel)
5. Resolve the dedupe playlist (self-healing, see _resolve_target)
6. Clear the dedupe playlist, then add N (skipped when N is empty)
7. track_ids ∪= D, latest_repeat_ids = R, repeat_ids ∪= R

Every step waits for the previous one. The only failure we swallow is in step 5;
everything else propagates and aborts THIS user's sync. The User passed in is
never mutated - the caller persists whatever comes back.
"""

import logging
from dataclasses import replace

import httpx

from dwdedupe.application.services.playlist_locator import PlaylistLocator
from dwdedupe.config import Settings
from dwdedupe.domain.dtos import PlaylistDetail, TrackInfo
from dwdedupe.domain.entities import User
from dwdedupe.domain.exceptions import ApiError, SourceNotFoundError
from dwdedupe.domain.value_objects import TrackDiff
from dwdedupe.infrastructure.integrations.spotify_client import SpotifyClient
from dwdedupe.infrastructure.plugins.spotify_plugin import SpotifyPlugin

logger = logging.getLogger(__name__)

DISCOVER_WEEKLY_NAME = "Discover Weekly"


class DedupeSyncService:
    """Keeps each user's dedupe playlist equal to this week's novel tracks."""

    def __init__(self, client: SpotifyClient, settings: Settings) -> None:
        """Initialize sync service.

        Args:
            client: Shared Spotify HTTP client
            settings: Application settings (playlist name, curator id, page size)
        """
        self._client = client
        self._settings = settings

    @property
    def dedupe_playlist_name(self) -> str:
        return self._settings.dedupe_playlist_name

    def _plugin_for(self, user: User) -> SpotifyPlugin:
        return SpotifyPlugin(self._client, user.access_token)

    def _locator_for(self, plugin: SpotifyPlugin) -> PlaylistLocator:
        return PlaylistLocator(plugin, page_size=self._settings.sync.page_size)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def resolve_source(self, user: User) -> str:
        """Find the curator-owned Discover Weekly playlist id.

        Raises:
            SourceNotFoundError: If no such playlist is visible to the user
        """
        locator = self._locator_for(self._plugin_for(user))
        playlist = await locator.find_owned_by(
            self._settings.spotify.curator_id, DISCOVER_WEEKLY_NAME
        )
        if playlist is None:
            raise SourceNotFoundError(user.id)
        logger.info(
            "dedupe_sync.source.resolved",
            extra={"user_id": user.id, "playlist_id": playlist.id},
        )
        return playlist.id

    async def bootstrap(self, user: User) -> User:
        """First-login initialization: locate Discover Weekly, then run a first sync."""
        if user.discover_weekly_id is None:
            source_id = await self.resolve_source(user)
            user = replace(user, discover_weekly_id=source_id)
        return await self.reconcile(user)

    async def reconcile(self, user: User) -> User:
        """Run one reconciliation for a user.

        Args:
            user: User with valid (recently refreshed) credentials

        Returns:
            Updated copy of the user

        Raises:
            SourceNotFoundError: Discover Weekly could not be located
            ApiError: Any Spotify call outside the target fallback failed
        """
        plugin = self._plugin_for(user)
        locator = self._locator_for(plugin)

        # Step 1
        source_id = user.discover_weekly_id
        if source_id is None:
            source_id = await self.resolve_source(user)

        # Steps 2-4
        discover_weekly = await plugin.get_playlist(source_id)
        diff = TrackDiff.compute(discover_weekly.track_ids, user.track_ids)

        # Step 5
        target = await self._resolve_target(plugin, locator, user)

        # Step 6
        await self._replace_tracks(plugin, target, list(diff.novel))

        # Step 7
        updated = user.with_sync_result(source_id, target.id, diff)

        logger.info(
            "dedupe_sync.reconciled",
            extra={
                "user_id": user.id,
                "discover_weekly_count": len(diff.current),
                "repeat_count": len(diff.repeats),
                "novel_count": len(diff.novel),
                "dedupe_playlist_id": target.id,
            },
        )
        return updated

    async def describe_tracks(self, user: User, track_ids: set[str]) -> list[TrackInfo]:
        """Look up display data for stored track ids (history / latest pages)."""
        if not track_ids:
            return []
        return await self._plugin_for(user).get_tracks(sorted(track_ids))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    # Hey future me - this is the SELF-HEALING part! The stored dw_dedupe_id goes stale when
    # the user deletes the playlist in Spotify, or when a previous run crashed after creating
    # the playlist but before the id got saved. Whatever went wrong with the direct fetch we
    # log it and fall back to: search by name (reuses the crash-orphaned playlist instead of
    # making a duplicate), then create. Do NOT let the original error escape from here.
    async def _resolve_target(
        self, plugin: SpotifyPlugin, locator: PlaylistLocator, user: User
    ) -> PlaylistDetail:
        if user.dw_dedupe_id:
            try:
                playlist = await plugin.get_playlist(user.dw_dedupe_id)
            except (ApiError, httpx.HTTPError) as e:
                logger.warning(
                    "dedupe_sync.target.fetch_failed",
                    extra={
                        "user_id": user.id,
                        "playlist_id": user.dw_dedupe_id,
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                )
            else:
                if playlist.owner_id == user.id:
                    return playlist
                logger.warning(
                    "dedupe_sync.target.not_owned",
                    extra={
                        "user_id": user.id,
                        "playlist_id": playlist.id,
                        "owner_id": playlist.owner_id,
                    },
                )

        existing = await locator.find_owned_by(user.id, self.dedupe_playlist_name)
        if existing is not None:
            logger.info(
                "dedupe_sync.target.relocated",
                extra={"user_id": user.id, "playlist_id": existing.id},
            )
            return await plugin.get_playlist(existing.id)

        return await plugin.create_playlist(user.id, self.dedupe_playlist_name, public=False)

    # Listen up, order matters: clear FIRST, then add. Otherwise the playlist grows by 30
    # tracks every week.
    async def _replace_tracks(
        self, plugin: SpotifyPlugin, target: PlaylistDetail, novel: list[str]
    ) -> None:
        if target.track_ids:
            await plugin.remove_tracks(target.id, target.track_ids)
        if novel:
            await plugin.add_tracks(target.id, novel)

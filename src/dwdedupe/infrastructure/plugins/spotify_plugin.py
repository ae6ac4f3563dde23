"""
Spotify Plugin - typed view of the Web API for one user.

Hey future me - SpotifyClient gibt rohe dicts zurück, SpotifyPlugin macht daraus DTOs!
Das Plugin ist an EINEN access_token gebunden und wird pro Sync/Request neu erstellt.

Architektur:
- SpotifyClient: Low-Level HTTP Client (Auth-Header, Fehlerklassifizierung)
- SpotifyPlugin: Pfade, Batching und JSON → DTO Konvertierung

Verwendung:
    plugin = SpotifyPlugin(spotify_client, user.access_token)
    page = await plugin.get_user_playlists(limit=50, offset=0)
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

from dwdedupe.domain.dtos import (
    PlaylistDetail,
    PlaylistPage,
    PlaylistSummary,
    Profile,
    TrackInfo,
)
from dwdedupe.domain.exceptions import MalformedResponseError
from dwdedupe.domain.value_objects import track_uri
from dwdedupe.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

# Spotify caps: 50 ids per GET /tracks, 100 uris per playlist add/remove
MAX_TRACK_IDS_PER_LOOKUP = 50
MAX_URIS_PER_MUTATION = 100

T = TypeVar("T")


def _chunks(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


# Hey future me - a 2xx with a body we can't decode (missing "id", items that aren't
# objects, ...) is as broken as a 5xx from our point of view. Turn the KeyError/TypeError
# into an ApiError subclass so the target fallback in a sync (and the 502 page) see it.
def _decode(convert: Callable[[Any], T], data: Any, path: str) -> T:
    try:
        return convert(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise MalformedResponseError(data, url=path, reason=f"{type(e).__name__}: {e}") from e


class SpotifyPlugin:
    """Typed Spotify operations bound to one access token.

    ApiError from the client is NOT wrapped - callers (the sync service) decide
    which failures they can recover from.
    """

    def __init__(self, client: SpotifyClient, access_token: str) -> None:
        """
        Initialize Spotify plugin.

        Args:
            client: Low-level SpotifyClient for HTTP calls
            access_token: OAuth access token of the user we act for
        """
        self._client = client
        self._access_token = access_token

    # =========================================================================
    # USER PROFILE
    # =========================================================================

    async def get_current_user(self) -> Profile:
        """Get the profile behind the access token."""
        data = await self._client.get("/me", self._access_token)
        return _decode(self._convert_profile, data, "/me")

    # =========================================================================
    # PLAYLISTS
    # =========================================================================

    async def get_user_playlists(self, limit: int = 50, offset: int = 0) -> PlaylistPage:
        """Get one page of playlists owned or followed by the current user."""
        # Clamp limit to Spotify's max of 50
        limit = min(limit, 50)
        data = await self._client.get(
            "/me/playlists",
            self._access_token,
            params={"limit": limit, "offset": offset},
        )
        summaries = _decode(
            lambda raw: [self._convert_summary(p) for p in raw.get("items") or [] if p],
            data,
            "/me/playlists",
        )
        return PlaylistPage(
            items=summaries,
            offset=offset,
            limit=limit,
            total=data.get("total"),
        )

    # Listen up - GET /playlists/{id} embeds only the first 100 tracks. Anything past that
    # comes from get_playlist_tracks(), otherwise the "clear" in a sync would leave every
    # track beyond #100 sitting in the dedupe playlist.
    async def get_playlist(self, playlist_id: str) -> PlaylistDetail:
        """Get a playlist with ALL of its track ids."""
        path = f"/playlists/{playlist_id}"
        data = await self._client.get(path, self._access_token)
        detail = _decode(self._convert_detail, data, path)

        tracks = data.get("tracks") or {}
        if not tracks.get("next"):
            return detail

        track_ids = list(detail.track_ids)
        offset: int | None = len(tracks.get("items") or [])
        while offset is not None:
            page_ids, offset = await self.get_playlist_tracks(playlist_id, offset=offset)
            track_ids.extend(page_ids)
        logger.debug(
            "spotify.playlist.paged",
            extra={"playlist_id": playlist_id, "track_count": len(track_ids)},
        )
        return replace(detail, track_ids=track_ids)

    async def get_playlist_tracks(
        self, playlist_id: str, limit: int = 100, offset: int = 0
    ) -> tuple[list[str], int | None]:
        """Get one page of a playlist's track ids.

        Returns:
            (track ids on this page, offset of the next page or None when done)
        """
        path = f"/playlists/{playlist_id}/tracks"
        data = await self._client.get(
            path,
            self._access_token,
            params={"limit": min(limit, 100), "offset": offset},
        )
        items = data.get("items") or []
        track_ids = _decode(self._track_ids, items, path)
        next_offset = offset + len(items) if data.get("next") and items else None
        return track_ids, next_offset

    async def create_playlist(
        self, user_id: str, name: str, public: bool = False
    ) -> PlaylistDetail:
        """Create an (empty) playlist owned by user_id."""
        data = await self._client.post(
            f"/users/{user_id}/playlists",
            self._access_token,
            {"name": name, "public": public},
        )
        detail = _decode(self._convert_detail, data, f"/users/{user_id}/playlists")
        logger.info(
            "spotify.playlist.created",
            extra={"user_id": user_id, "playlist_id": detail.id, "playlist_name": name},
        )
        return detail

    # Hey future me - NEVER call Spotify with an empty uris list, it answers 400. Both
    # mutation helpers are no-ops for empty input so callers don't have to remember that.
    async def add_tracks(self, playlist_id: str, track_ids: list[str]) -> None:
        """Append tracks to a playlist in Spotify-sized batches."""
        for chunk in _chunks(track_ids, MAX_URIS_PER_MUTATION):
            await self._client.post(
                f"/playlists/{playlist_id}/tracks",
                self._access_token,
                {"uris": [track_uri(track_id) for track_id in chunk]},
            )

    async def remove_tracks(self, playlist_id: str, track_ids: list[str]) -> None:
        """Remove every occurrence of the given tracks from a playlist."""
        unique_ids = list(dict.fromkeys(track_ids))
        for chunk in _chunks(unique_ids, MAX_URIS_PER_MUTATION):
            await self._client.delete(
                f"/playlists/{playlist_id}/tracks",
                self._access_token,
                {"tracks": [{"uri": track_uri(track_id)} for track_id in chunk]},
            )

    # =========================================================================
    # TRACKS
    # =========================================================================

    # Hey future me, GET /tracks takes max 50 comma-separated ids. If a track ID is
    # invalid/deleted, Spotify returns null in that position - we filter those out!
    async def get_tracks(self, track_ids: list[str]) -> list[TrackInfo]:
        """Get display data for tracks, batching 50 ids per request."""
        tracks: list[TrackInfo] = []
        for chunk in _chunks(track_ids, MAX_TRACK_IDS_PER_LOOKUP):
            data = await self._client.get(
                "/tracks", self._access_token, params={"ids": ",".join(chunk)}
            )
            tracks.extend(
                _decode(
                    lambda raw: [self._convert_track(t) for t in raw.get("tracks") or [] if t],
                    data,
                    "/tracks",
                )
            )
        return tracks

    # =========================================================================
    # CONVERSION
    # =========================================================================

    @staticmethod
    def _convert_profile(data: dict[str, Any]) -> Profile:
        return Profile(
            id=data["id"],
            display_name=data.get("display_name"),
            email=data.get("email"),
            country=data.get("country"),
        )

    @staticmethod
    def _convert_summary(data: dict[str, Any]) -> PlaylistSummary:
        owner = data.get("owner") or {}
        tracks = data.get("tracks") or {}
        return PlaylistSummary(
            id=data["id"],
            name=data.get("name") or "",
            owner_id=owner.get("id"),
            total_tracks=tracks.get("total"),
        )

    @staticmethod
    def _track_ids(items: list[Any]) -> list[str]:
        return [
            item["track"]["id"]
            for item in items
            if item and item.get("track") and item["track"].get("id")
        ]

    @classmethod
    def _convert_detail(cls, data: dict[str, Any]) -> PlaylistDetail:
        owner = data.get("owner") or {}
        items = (data.get("tracks") or {}).get("items") or []
        return PlaylistDetail(
            id=data["id"],
            name=data.get("name") or "",
            owner_id=owner.get("id"),
            track_ids=cls._track_ids(items),
            snapshot_id=data.get("snapshot_id"),
        )

    @staticmethod
    def _convert_track(data: dict[str, Any]) -> TrackInfo:
        album = data.get("album") or {}
        return TrackInfo(
            id=data["id"],
            name=data.get("name") or "Unknown Track",
            artists=[a["name"] for a in data.get("artists") or [] if a and a.get("name")],
            album=album.get("name"),
            url=(data.get("external_urls") or {}).get("spotify"),
        )

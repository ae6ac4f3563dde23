"""
Data Transfer Objects for Spotify API responses.

Hey future me - diese DTOs sind die einzige Form, in der Spotify-Daten die
Infrastruktur-Schicht verlassen! SpotifyPlugin dekodiert das rohe JSON hier
hinein, Services arbeiten NIE mit dicts.

Flow: Spotify API Response → SpotifyPlugin → DTO → Service → User entity
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Profile:
    """Current user's profile from GET /v1/me."""

    id: str
    display_name: str | None = None
    email: str | None = None
    country: str | None = None


# Hey future me - owner_id can be None for some odd editorial playlists. The
# locator predicates just won't match those, which is what we want.
@dataclass(frozen=True)
class PlaylistSummary:
    """Playlist metadata as listed by GET /v1/me/playlists (no tracks)."""

    id: str
    name: str
    owner_id: str | None = None
    total_tracks: int | None = None


@dataclass(frozen=True)
class PlaylistPage:
    """One page of the user's playlist list."""

    items: list[PlaylistSummary]
    offset: int
    limit: int
    total: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class PlaylistDetail:
    """Full playlist from GET /v1/playlists/{id}.

    track_ids keeps playlist order (insertion order = position). Local files
    and unavailable tracks come back with a null track or id and are skipped.
    """

    id: str
    name: str
    owner_id: str | None = None
    track_ids: list[str] = field(default_factory=list)
    snapshot_id: str | None = None


@dataclass(frozen=True)
class TrackInfo:
    """Display data for one track (history / latest pages)."""

    id: str
    name: str
    artists: list[str] = field(default_factory=list)
    album: str | None = None
    url: str | None = None

    @property
    def artist_names(self) -> str:
        return ", ".join(self.artists)


__all__ = [
    "PlaylistDetail",
    "PlaylistPage",
    "PlaylistSummary",
    "Profile",
    "TrackInfo",
]

"""Paginated search through the current user's playlists."""

import logging
from collections.abc import Callable

from dwdedupe.domain.dtos import PlaylistSummary
from dwdedupe.infrastructure.plugins.spotify_plugin import SpotifyPlugin

logger = logging.getLogger(__name__)

OwnerPredicate = Callable[[str | None], bool]
NamePredicate = Callable[[str], bool]


# Hey future me - this scan deliberately ignores "total" and "next" from Spotify! The ONLY
# stop condition is an empty page. Page N full, page N+1 empty → N+1 requests, never more.
# It assumes Spotify enumerates playlists stably while we page through; if the user
# reorders playlists mid-scan we might miss one, and the dedupe fallback just creates
# a new playlist in that (rare) case.
class PlaylistLocator:
    """Find the first playlist matching owner and name predicates."""

    PAGE_SIZE = 50

    def __init__(self, plugin: SpotifyPlugin, page_size: int = PAGE_SIZE) -> None:
        self._plugin = plugin
        self._page_size = page_size

    async def find_playlist(
        self, owner_matches: OwnerPredicate, name_matches: NamePredicate
    ) -> PlaylistSummary | None:
        """Scan playlist pages in order and return the first match.

        Args:
            owner_matches: Predicate on the playlist owner's id
            name_matches: Predicate on the playlist name

        Returns:
            Matching playlist summary, or None once an empty page is reached
        """
        offset = 0
        pages_fetched = 0
        while True:
            page = await self._plugin.get_user_playlists(
                limit=self._page_size, offset=offset
            )
            pages_fetched += 1
            if page.is_empty:
                logger.debug(
                    "playlist_locator.not_found", extra={"pages_fetched": pages_fetched}
                )
                return None

            for playlist in page.items:
                if owner_matches(playlist.owner_id) and name_matches(playlist.name):
                    return playlist

            offset += self._page_size

    async def find_owned_by(self, owner_id: str, name: str) -> PlaylistSummary | None:
        """Shortcut for the exact owner/name match both sync lookups use."""
        return await self.find_playlist(
            lambda owner: owner == owner_id,
            lambda playlist_name: playlist_name == name,
        )

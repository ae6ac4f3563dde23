"""Set algebra behind one Discover Weekly reconciliation."""

from collections.abc import Iterable, Set
from dataclasses import dataclass

TRACK_URI_PREFIX = "spotify:track:"


def track_uri(track_id: str) -> str:
    """Build a Spotify track URI from a bare track id."""
    return f"{TRACK_URI_PREFIX}{track_id}"


# Hey future me - TrackDiff is PURE. No I/O, no clock, no user mutation. The sync
# service fetches the playlist, hands the ids in here, and applies the result to
# the user afterwards. Tuples (not sets) so "novel" keeps Discover Weekly order -
# that's the order tracks get added to the dedupe playlist.
@dataclass(frozen=True)
class TrackDiff:
    """Discover Weekly split into repeats and novel tracks.

    Attributes:
        current: D - this week's Discover Weekly ids, duplicates collapsed
        repeats: R = D ∩ seen
        novel: N = D - R
    """

    current: tuple[str, ...]
    repeats: tuple[str, ...]
    novel: tuple[str, ...]

    @classmethod
    def compute(cls, discover_weekly_ids: Iterable[str], seen: Set[str]) -> "TrackDiff":
        """Split Discover Weekly ids against the historical track set.

        Args:
            discover_weekly_ids: Track ids in playlist order (may repeat)
            seen: Every track id surfaced in earlier weeks

        Returns:
            TrackDiff with N ∪ R = D and N ∩ R = ∅
        """
        current = tuple(dict.fromkeys(discover_weekly_ids))
        repeats = tuple(track_id for track_id in current if track_id in seen)
        novel = tuple(track_id for track_id in current if track_id not in seen)
        return cls(current=current, repeats=repeats, novel=novel)

    @property
    def is_empty(self) -> bool:
        return not self.current

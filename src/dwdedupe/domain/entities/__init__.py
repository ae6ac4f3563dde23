"""Domain entities."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from dwdedupe.domain.dtos import Profile
from dwdedupe.domain.value_objects import TrackDiff


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - Credentials are REPLACED wholesale on every refresh, never patched field
# by field. Spotify sometimes rotates the refresh token and sometimes doesn't; the client
# fills in the old one when the response has none, so by the time you see a Credentials
# object both tokens are always set.
@dataclass(frozen=True)
class Credentials:
    """OAuth token pair owned by one user."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str | None = None


# Yo, User is THE record the whole app revolves around - one per Spotify account. It's
# stored whole (document style) and the sync service hands back a NEW User instead of
# mutating the one it got, so a failed sync never leaves a half-updated object around.
# The three id sets:
# - track_ids: everything ever seen in Discover Weekly (only grows)
# - repeat_ids: every repeat ever detected (only grows)
# - latest_repeat_ids: repeats from the most recent sync (overwritten)
@dataclass
class User:
    """A signed-in Spotify user and their dedupe history."""

    id: str
    credentials: Credentials
    display_name: str | None = None
    discover_weekly_id: str | None = None
    dw_dedupe_id: str | None = None
    track_ids: set[str] = field(default_factory=set)
    repeat_ids: set[str] = field(default_factory=set)
    latest_repeat_ids: set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    last_synced_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("User id cannot be empty")

    @classmethod
    def from_profile(cls, profile: Profile, credentials: Credentials) -> "User":
        """Create a brand-new user from a freshly authorized profile."""
        return cls(
            id=profile.id,
            credentials=credentials,
            display_name=profile.display_name,
        )

    @property
    def access_token(self) -> str:
        return self.credentials.access_token

    @property
    def is_initialized(self) -> bool:
        """True once the first sync located Discover Weekly and the dedupe playlist."""
        return self.discover_weekly_id is not None and self.dw_dedupe_id is not None

    def with_credentials(
        self, credentials: Credentials, display_name: str | None = None
    ) -> "User":
        """Return a copy carrying new credentials (and profile name, if given)."""
        return replace(
            self,
            credentials=credentials,
            display_name=display_name or self.display_name,
            updated_at=utc_now(),
        )

    # Listen up - discover_weekly_id is set once and never changed afterwards. If the user
    # already has one we keep it even if a different id was passed in.
    def with_sync_result(
        self, discover_weekly_id: str, dw_dedupe_id: str, diff: TrackDiff
    ) -> "User":
        """Return a copy with one reconciliation applied to the history sets."""
        now = utc_now()
        repeats = set(diff.repeats)
        return replace(
            self,
            discover_weekly_id=self.discover_weekly_id or discover_weekly_id,
            dw_dedupe_id=dw_dedupe_id,
            track_ids=self.track_ids | set(diff.current),
            latest_repeat_ids=repeats,
            repeat_ids=self.repeat_ids | repeats,
            updated_at=now,
            last_synced_at=now,
        )


__all__ = ["Credentials", "User", "utc_now"]

"""SQLAlchemy ORM models for DW Dedupe."""

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from dwdedupe.domain.entities import utc_now


# Hey future me - SQLite doesn't preserve timezone info! When we store UTC datetimes, they come
# back as "naive" (no tzinfo). ALWAYS run values read from the DB through this before comparing
# with datetime.now(UTC).
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, UserModel is a DOCUMENT in a table: one row per Spotify account, written whole
# on every save. The three id sets live in JSON columns as sorted lists (JSON has no sets).
# The id is Spotify's user id, not a UUID - it's the stable external identity.
class UserModel(Base):
    """SQLAlchemy model for the User entity."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    token_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Bearer")
    expires_in: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scope: Mapped[str | None] = mapped_column(Text, nullable=True)

    discover_weekly_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dw_dedupe_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    track_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    repeat_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    latest_repeat_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

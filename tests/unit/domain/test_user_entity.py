"""Tests for the User entity and Credentials."""

from dataclasses import FrozenInstanceError

import pytest

from dwdedupe.domain.dtos import Profile
from dwdedupe.domain.entities import Credentials, User
from dwdedupe.domain.value_objects import TrackDiff


def _user(**kwargs) -> User:
    return User(id="alice", credentials=Credentials("at", "rt"), **kwargs)


class TestUser:
    """Test User entity behaviour."""

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot be empty"):
            User(id="  ", credentials=Credentials("at", "rt"))

    def test_from_profile(self) -> None:
        user = User.from_profile(Profile(id="alice", display_name="Alice"), Credentials("at", "rt"))

        assert user.id == "alice"
        assert user.display_name == "Alice"
        assert user.access_token == "at"
        assert user.track_ids == set()
        assert not user.is_initialized

    def test_with_credentials_returns_copy(self) -> None:
        user = _user(display_name="Alice")
        updated = user.with_credentials(Credentials("at2", "rt2"))

        assert updated.credentials.access_token == "at2"
        assert updated.display_name == "Alice"
        assert user.credentials.access_token == "at"

    def test_with_credentials_takes_new_display_name(self) -> None:
        updated = _user(display_name="Alice").with_credentials(Credentials("at2", "rt2"), "Ally")
        assert updated.display_name == "Ally"

    def test_with_sync_result_applies_history(self) -> None:
        user = _user(track_ids={"b", "z"}, repeat_ids={"z"}, latest_repeat_ids={"z"})
        diff = TrackDiff.compute(["a", "b", "c"], user.track_ids)

        updated = user.with_sync_result("dw", "dd", diff)

        assert updated.track_ids == {"a", "b", "c", "z"}
        assert updated.latest_repeat_ids == {"b"}
        assert updated.repeat_ids == {"b", "z"}
        assert updated.discover_weekly_id == "dw"
        assert updated.dw_dedupe_id == "dd"
        assert updated.last_synced_at is not None
        assert updated.is_initialized

    def test_with_sync_result_does_not_mutate_original(self) -> None:
        user = _user(track_ids={"b"})
        user.with_sync_result("dw", "dd", TrackDiff.compute(["a", "b"], user.track_ids))

        assert user.track_ids == {"b"}
        assert user.dw_dedupe_id is None

    def test_discover_weekly_id_is_never_overwritten(self) -> None:
        user = _user(discover_weekly_id="dw-original")
        updated = user.with_sync_result("dw-other", "dd", TrackDiff.compute([], set()))
        assert updated.discover_weekly_id == "dw-original"


def test_credentials_are_immutable() -> None:
    credentials = Credentials("at", "rt")
    with pytest.raises(FrozenInstanceError):
        credentials.access_token = "other"  # type: ignore[misc]

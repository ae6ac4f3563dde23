"""Tests for SpotifyAuthService: state handling, sign-in and refresh."""

from urllib.parse import parse_qs, urlparse

import pytest

from dwdedupe.domain.exceptions import AuthError, SourceNotFoundError, StateMismatchError
from dwdedupe.infrastructure.persistence import UserRepository


class TestStateGeneration:
    def test_state_uses_configured_shape(self, auth_service) -> None:
        state = auth_service.generate_state()

        assert len(state) == 32
        assert state.isalpha() and state.islower()

    def test_states_differ(self, auth_service) -> None:
        assert auth_service.generate_state() != auth_service.generate_state()

    def test_begin_authorization_embeds_state(self, auth_service) -> None:
        request = auth_service.begin_authorization()

        query = parse_qs(urlparse(request.authorization_url).query)
        assert query["state"] == [request.state]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == ["http://localhost:8000/spotify/authorize/callback"]


class TestCompleteAuthorization:
    async def test_state_mismatch_rejected_before_token_call(
        self, auth_service, database, fake_spotify
    ) -> None:
        code = fake_spotify.add_user("alice")

        async with database.session_scope() as session:
            with pytest.raises(StateMismatchError):
                await auth_service.complete_authorization(
                    "attacker-state", "our-state", code, UserRepository(session)
                )

        assert fake_spotify.requests == []

    async def test_missing_pending_state_rejected(
        self, auth_service, database, fake_spotify
    ) -> None:
        async with database.session_scope() as session:
            with pytest.raises(StateMismatchError):
                await auth_service.complete_authorization(
                    "some-state", None, "code", UserRepository(session)
                )
        assert fake_spotify.requests == []

    async def test_provider_error_raises_auth_error(self, auth_service, database) -> None:
        async with database.session_scope() as session:
            with pytest.raises(AuthError) as exc_info:
                await auth_service.complete_authorization(
                    "s", "s", None, UserRepository(session), error="access_denied"
                )
        assert exc_info.value.error_code == "access_denied"

    async def test_rejected_code_raises_auth_error(
        self, auth_service, database, fake_spotify
    ) -> None:
        async with database.session_scope() as session:
            with pytest.raises(AuthError):
                await auth_service.complete_authorization(
                    "s", "s", "unknown-code", UserRepository(session)
                )

    async def test_new_user_bootstrapped_and_saved(
        self, auth_service, database, fake_spotify
    ) -> None:
        code = fake_spotify.add_user("alice", "Alice")
        dw = fake_spotify.add_discover_weekly("alice", ["a", "b"])

        async with database.session_scope() as session:
            user = await auth_service.complete_authorization(
                "s", "s", code, UserRepository(session)
            )

        assert user.id == "alice"
        assert user.display_name == "Alice"
        assert user.discover_weekly_id == dw
        assert user.track_ids == {"a", "b"}

        async with database.session_scope() as session:
            stored = await UserRepository(session).get("alice")
        assert stored is not None
        assert stored.credentials.refresh_token == "rt-alice"
        assert stored.dw_dedupe_id == user.dw_dedupe_id

    async def test_new_user_without_discover_weekly_not_saved(
        self, auth_service, database, fake_spotify
    ) -> None:
        code = fake_spotify.add_user("alice")

        async with database.session_scope() as session:
            with pytest.raises(SourceNotFoundError):
                await auth_service.complete_authorization(
                    "s", "s", code, UserRepository(session)
                )

        async with database.session_scope() as session:
            assert await UserRepository(session).get("alice") is None

    async def test_existing_user_gets_new_credentials_only(
        self, auth_service, database, fake_spotify, make_user
    ) -> None:
        existing = make_user(
            discover_weekly_id="dw-alice",
            dw_dedupe_id="dd",
            track_ids={"x", "y"},
            latest_repeat_ids={"y"},
        )
        async with database.session_scope() as session:
            await UserRepository(session).save(existing)
        code = fake_spotify.add_user("alice", "Alice Again")

        async with database.session_scope() as session:
            user = await auth_service.complete_authorization(
                "s", "s", code, UserRepository(session)
            )

        assert user.track_ids == {"x", "y"}
        assert user.latest_repeat_ids == {"y"}
        assert user.display_name == "Alice Again"
        # No sync on re-login
        assert fake_spotify.calls("GET", "/v1/playlists") == []


class TestRefresh:
    async def test_refresh_keeps_refresh_token(self, auth_service, make_user) -> None:
        user = make_user(track_ids={"a"})

        refreshed = await auth_service.refresh_credentials(user)

        assert refreshed.credentials.access_token == "at-alice"
        assert refreshed.credentials.refresh_token == "rt-alice"
        assert refreshed.track_ids == {"a"}

    async def test_revoked_refresh_token(self, auth_service, fake_spotify, make_user) -> None:
        fake_spotify.revoked_refresh_tokens.add("rt-alice")

        with pytest.raises(AuthError) as exc_info:
            await auth_service.refresh_credentials(make_user())

        assert exc_info.value.requires_reauth

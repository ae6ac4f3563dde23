"""Spotify OAuth Authentication Service.

Hey future me - this service encapsulates the whole sign-in flow!

Per browser session it's a tiny state machine:
    Anonymous → PendingAuthorization(state) → Authenticated(user_id)

1. begin_authorization() -> state + authorize URL (router stores state in session)
2. User visits URL, grants access, Spotify redirects back with state + code
3. complete_authorization() -> checks state FIRST, exchanges code, loads/creates User
4. refresh_credentials() -> fresh access token before every page view / batch sync

Session storage is the router's job - this service never touches cookies.
"""

import logging
import secrets
from dataclasses import dataclass

from dwdedupe.application.services.dedupe_sync_service import DedupeSyncService
from dwdedupe.config import Settings
from dwdedupe.domain.entities import User
from dwdedupe.domain.exceptions import AuthError, StateMismatchError
from dwdedupe.domain.ports import IUserRepository
from dwdedupe.infrastructure.integrations.spotify_client import SpotifyClient
from dwdedupe.infrastructure.plugins.spotify_plugin import SpotifyPlugin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Result of begin_authorization().

    Hey future me - store state in the session BEFORE redirecting to the URL!
    """

    state: str
    authorization_url: str


class SpotifyAuthService:
    """Service for Spotify OAuth sign-in and token refresh."""

    def __init__(
        self,
        client: SpotifyClient,
        settings: Settings,
        sync_service: DedupeSyncService,
    ) -> None:
        """Initialize auth service.

        Args:
            client: Shared Spotify HTTP client
            settings: Application settings (state length/alphabet)
            sync_service: Used for the first-login bootstrap sync
        """
        self._client = client
        self._settings = settings
        self._sync = sync_service

    def generate_state(self) -> str:
        """Random opaque state token from the configured alphabet."""
        alphabet = self._settings.auth.state_alphabet
        return "".join(
            secrets.choice(alphabet) for _ in range(self._settings.auth.state_length)
        )

    def begin_authorization(self) -> AuthorizationRequest:
        """Start the OAuth dance: new state plus the provider's authorize URL."""
        state = self.generate_state()
        logger.debug(f"Generated auth URL with state={state[:8]}...")
        return AuthorizationRequest(
            state=state,
            authorization_url=self._client.build_authorization_url(state),
        )

    # Hey future me - the state check MUST come before anything touches Spotify! A mismatched
    # (or missing) state means the callback didn't start from our redirect - that's the CSRF
    # case, and exchanging the code would log the victim into the attacker's account.
    async def complete_authorization(
        self,
        returned_state: str | None,
        pending_state: str | None,
        code: str | None,
        users: IUserRepository,
        error: str | None = None,
    ) -> User:
        """Finish sign-in and return the stored User.

        Args:
            returned_state: state query param from the callback
            pending_state: state stored in the session by begin_authorization()
            code: Authorization code from the callback
            users: User store
            error: error query param from the callback (user denied access, ...)

        Returns:
            The persisted user (created and bootstrapped on first sign-in)

        Raises:
            StateMismatchError: Callback state doesn't match the pending one
            AuthError: Spotify reported an error or rejected the code
            SourceNotFoundError: First sign-in and no Discover Weekly found
        """
        if not pending_state or returned_state != pending_state:
            logger.error(
                "auth.state_mismatch",
                extra={"callback_state": returned_state, "session_state": pending_state},
            )
            raise StateMismatchError(returned_state, pending_state)

        if error:
            logger.error("auth.provider_error", extra={"error": error})
            raise AuthError(f"Spotify authorization error: {error}", error_code=error)
        if not code:
            raise AuthError("Spotify callback did not include an authorization code")

        credentials = await self._client.exchange_code(code)
        profile = await SpotifyPlugin(self._client, credentials.access_token).get_current_user()

        existing = await users.get(profile.id)
        if existing is not None:
            user = existing.with_credentials(credentials, profile.display_name)
            await users.save(user)
            logger.info("auth.signed_in", extra={"user_id": user.id, "new_user": False})
            return user

        # First time we see this identity: the record only exists once Discover Weekly
        # was found and the first sync went through.
        user = await self._sync.bootstrap(User.from_profile(profile, credentials))
        await users.save(user)
        logger.info("auth.signed_in", extra={"user_id": user.id, "new_user": True})
        return user

    async def refresh_credentials(self, user: User) -> User:
        """Return a copy of the user with freshly refreshed credentials.

        Raises:
            AuthError: If the refresh token was revoked
        """
        credentials = await self._client.refresh(user.credentials.refresh_token)
        return user.with_credentials(credentials)

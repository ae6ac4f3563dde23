"""Spotify HTTP client: OAuth token exchange and raw authenticated API calls."""

import base64
import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from dwdedupe.config.settings import SpotifySettings
from dwdedupe.domain.entities import Credentials
from dwdedupe.domain.exceptions import ApiError, AuthError

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Low-level HTTP client for the Spotify accounts service and Web API.

    No business logic lives here. Token endpoint calls authenticate with HTTP
    Basic (client id + secret), resource calls with the user's Bearer token.
    Every call is a single attempt; non-2xx resource responses raise ApiError.
    """

    # Hey future me, no httpx.AsyncClient is built here: it has to be created inside the
    # running event loop, so _get_client() makes it on first use and keeps it for reuse.
    # The transport param is the seam for tests (httpx.MockTransport) and for anyone who wants
    # retries: wrap httpx.AsyncHTTPTransport(retries=...) or your own transport and pass it in.
    def __init__(
        self,
        settings: SpotifySettings,
        redirect_uri: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Build a client for one Spotify app registration.

        Args:
            settings: Spotify configuration settings
            redirect_uri: OAuth callback URL (must match the app registration)
            transport: Optional httpx transport override
        """
        self.settings = settings
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def authorize_url(self) -> str:
        return f"{self.settings.accounts_url}/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.settings.accounts_url}/api/token"

    async def _get_client(self) -> httpx.AsyncClient:
        """Shared AsyncClient, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout, transport=self._transport
            )
        return self._client

    # Hey, this close() is IMPORTANT - if you don't call it, you'll leak connections.
    # The app lifespan calls it at shutdown.
    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # OAUTH
    # =========================================================================

    def build_authorization_url(self, state: str) -> str:
        """
        Build the Spotify authorize URL the browser gets redirected to.

        Args:
            state: Anti-forgery state stored in the user's session

        Returns:
            Authorization URL
        """
        params = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "state": state,
            "scope": self.settings.scopes,
            "redirect_uri": self.redirect_uri,
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    # Yo future me, the authorization code is single-use and expires after a few minutes.
    # The redirect_uri MUST match EXACTLY what we used in build_authorization_url(), or
    # Spotify rejects the exchange. And yeah, it HAS to be form-urlencoded, not JSON.
    async def exchange_code(self, code: str) -> Credentials:
        """
        Exchange an authorization code for an access/refresh token pair.

        Args:
            code: Authorization code from the callback

        Returns:
            Fresh Credentials

        Raises:
            AuthError: If Spotify rejects the exchange
        """
        data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )
        logger.info("spotify.token.exchanged")
        return self._to_credentials(data)

    # Hey future me - Spotify does NOT always send a new refresh_token on refresh. When it's
    # missing the old one stays valid, so we carry it over. When it IS present the old one is
    # dead from now on - callers must persist the returned Credentials, not patch the old ones.
    async def refresh(self, refresh_token: str) -> Credentials:
        """
        Trade a refresh token for a new access token.

        Args:
            refresh_token: Refresh token from a previous exchange

        Returns:
            New Credentials (refresh token rotated if Spotify issued a new one)

        Raises:
            AuthError: If the refresh token is invalid or revoked
        """
        data = await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        logger.debug("spotify.token.refreshed")
        return self._to_credentials(data, fallback_refresh_token=refresh_token)

    async def _token_request(self, form: dict[str, str]) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.post(
            self.token_url,
            data=form,
            headers={
                "Authorization": self._basic_auth_header(),
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )
        if not response.is_success:
            body = self._decode_body(response)
            error_code = body.get("error") if isinstance(body, dict) else None
            description = (
                body.get("error_description") if isinstance(body, dict) else None
            )
            logger.warning(
                "spotify.token.rejected",
                extra={
                    "grant_type": form["grant_type"],
                    "status": response.status_code,
                    "error_code": error_code,
                },
            )
            raise AuthError(
                message=(
                    f"Spotify token request failed ({response.status_code}): "
                    f"{description or error_code or 'unknown error'}"
                ),
                error_code=error_code,
                http_status=response.status_code,
            )
        decoded = self._decode_body(response)
        if not isinstance(decoded, dict):
            raise AuthError(
                "Spotify token response is not JSON",
                http_status=response.status_code,
            )
        return decoded

    @staticmethod
    def _to_credentials(
        data: dict[str, Any], fallback_refresh_token: str | None = None
    ) -> Credentials:
        refresh_token = data.get("refresh_token") or fallback_refresh_token
        if "access_token" not in data or not refresh_token:
            raise AuthError("Spotify token response is missing tokens")
        return Credentials(
            access_token=data["access_token"],
            refresh_token=refresh_token,
            token_type=data.get("token_type", "Bearer"),
            expires_in=data.get("expires_in"),
            scope=data.get("scope"),
        )

    def _basic_auth_header(self) -> str:
        raw = f"{self.settings.client_id}:{self.settings.client_secret}"
        return f"Basic {base64.b64encode(raw.encode('utf-8')).decode('ascii')}"

    # =========================================================================
    # RESOURCE CALLS
    # =========================================================================

    async def get(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GET a Web API resource (path relative to the API base URL)."""
        return await self._api_request("GET", path, access_token, params=params)

    async def post(
        self, path: str, access_token: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """POST a JSON body to a Web API resource."""
        return await self._api_request("POST", path, access_token, body=body)

    async def delete(
        self, path: str, access_token: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """DELETE with a JSON body (Spotify's remove-tracks endpoint needs one)."""
        return await self._api_request("DELETE", path, access_token, body=body)

    # Hey future me - ALL Web API calls go through here. This is the ONE place where an
    # HTTP status turns into an exception. No retries: a 5xx aborts the user's sync for
    # this run and the next scheduled run tries again.
    async def _api_request(
        self,
        method: str,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a single authenticated API request.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: Path below the API base URL, e.g. "/me/playlists"
            access_token: OAuth access token
            params: Query parameters
            body: JSON body

        Returns:
            Decoded JSON response ({} for empty bodies)

        Raises:
            ApiError: On any non-2xx response
            httpx.HTTPError: On transport failures
        """
        client = await self._get_client()
        url = f"{self.settings.api_url}{path}"

        response = await client.request(
            method=method,
            url=url,
            params=params,
            json=body,
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if not response.is_success:
            raise ApiError(
                status=response.status_code,
                body=self._decode_body(response),
                method=method,
                url=url,
            )

        decoded = self._decode_body(response)
        return decoded if isinstance(decoded, dict) else {"data": decoded}

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # This is your base class - DON'T raise it directly! Always use a specific subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class AuthError(DomainException):
    """Token exchange or refresh against the accounts service failed.

    Raised for a rejected authorization code, a revoked refresh token or an
    authorization error reported back on the callback. The web layer drops
    the browser session when it sees this.
    """

    def __init__(
        self,
        message: str = "Spotify authorization failed. Please sign in again.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        # Hey - 400 with invalid_grant means refresh token is dead
        # 401/403 mean access denied (user revoked, etc.)
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


class ApiError(DomainException):
    """A resource call returned a non-2xx status.

    Spotify error bodies look like {"error": {"status": 404, "message": "..."}};
    we keep the decoded body as-is so handlers can log it.
    """

    def __init__(
        self, status: int, body: Any, method: str = "", url: str = ""
    ) -> None:
        super().__init__(f"Spotify API error {status} on {method} {url}: {body}")
        self.status = status
        self.body = body
        self.method = method
        self.url = url

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class MalformedResponseError(ApiError):
    """A 2xx resource response whose body doesn't have the shape we decode.

    Subclasses ApiError so every place that recovers from (or reports) a bad
    Spotify answer treats both the same way.
    """

    def __init__(self, body: Any, url: str = "", reason: str = "") -> None:
        DomainException.__init__(self, f"Unexpected Spotify response shape on {url}: {reason}")
        self.status = 200
        self.body = body
        self.method = "GET"
        self.url = url
        self.reason = reason


class SourceNotFoundError(DomainException):
    """No curator-owned Discover Weekly playlist is visible to the user.

    Not retried automatically - the user has to follow Discover Weekly in
    Spotify first.
    """

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No Discover Weekly playlist found for user {user_id}")
        self.user_id = user_id


class StateMismatchError(DomainException):
    """OAuth callback state does not match the state stored in the session."""

    def __init__(self, returned_state: str | None, pending_state: str | None) -> None:
        super().__init__("States don't match")
        self.returned_state = returned_state
        self.pending_state = pending_state


class AuthenticationError(DomainException):
    """No signed-in user for a page that needs one.

    Example:
        raise AuthenticationError("No user in session")
    """

    pass


__all__ = [
    "ApiError",
    "AuthError",
    "AuthenticationError",
    "DomainException",
    "MalformedResponseError",
    "SourceNotFoundError",
    "StateMismatchError",
]

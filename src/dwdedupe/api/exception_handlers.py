"""Custom exception handlers for the FastAPI application.

Domain exceptions become rendered error pages with a matching status code:

    AuthError            → 401, and the browser session is dropped
    ApiError             → 502 (Spotify said no)
    SourceNotFoundError  → 404
    StateMismatchError   → 400
    TimeoutError         → 504 (interactive sync ran past its deadline)
    httpx.HTTPError      → 502 (Spotify unreachable)
    anything else        → 500
    AuthenticationError  → redirect to /login
"""

import logging

import httpx
from fastapi import FastAPI, Request, status
from fastapi.responses import RedirectResponse, Response

from dwdedupe.api.templating import templates
from dwdedupe.domain.exceptions import (
    ApiError,
    AuthenticationError,
    AuthError,
    MalformedResponseError,
    SourceNotFoundError,
    StateMismatchError,
)

logger = logging.getLogger(__name__)


def _error_page(request: Request, status_code: int, title: str, message: str) -> Response:
    return templates.TemplateResponse(
        request,
        "error.html",
        context={
            "error_code": status_code,
            "error_title": title,
            "error_message": message,
        },
        status_code=status_code,
    )


# Hey future me, these MUST be registered before the app serves anything (create_app does
# it). They run inside SessionMiddleware, so request.session.clear() here still reaches the
# cookie on the way out.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for the domain exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> Response:
        logger.debug("Redirecting to login: %s", exc.message)
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> Response:
        logger.warning(
            "Spotify authorization failed at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error_code": exc.error_code,
                "http_status": exc.http_status,
            },
        )
        request.session.clear()
        return _error_page(
            request,
            status.HTTP_401_UNAUTHORIZED,
            "Sign-in failed",
            exc.message,
        )

    @app.exception_handler(StateMismatchError)
    async def state_mismatch_handler(
        request: Request, exc: StateMismatchError
    ) -> Response:
        logger.warning(
            "OAuth state mismatch at %s", request.url.path, extra={"path": request.url.path}
        )
        return _error_page(
            request,
            status.HTTP_400_BAD_REQUEST,
            "Sign-in failed",
            exc.message,
        )

    @app.exception_handler(SourceNotFoundError)
    async def source_not_found_handler(
        request: Request, exc: SourceNotFoundError
    ) -> Response:
        logger.info(
            "Discover Weekly not found for %s",
            exc.user_id,
            extra={"path": request.url.path, "user_id": exc.user_id},
        )
        return _error_page(
            request,
            status.HTTP_404_NOT_FOUND,
            "Discover Weekly not found",
            "We couldn't find your Discover Weekly playlist. "
            "Follow it in Spotify and try again.",
        )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> Response:
        logger.error(
            "Spotify API error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "status": exc.status, "url": exc.url},
        )
        if isinstance(exc, MalformedResponseError):
            detail = "Spotify sent a response we couldn't read."
        else:
            detail = f"Spotify returned status {exc.status}."
        return _error_page(
            request,
            status.HTTP_502_BAD_GATEWAY,
            "Spotify request failed",
            f"{detail} Please try again later.",
        )

    @app.exception_handler(TimeoutError)
    async def timeout_handler(request: Request, exc: TimeoutError) -> Response:
        logger.error("Request timed out at %s", request.url.path)
        return _error_page(
            request,
            status.HTTP_504_GATEWAY_TIMEOUT,
            "Sync timed out",
            "Spotify took too long to respond. Please try again later.",
        )

    # Hey future me - httpx errors (DNS, connect refused, read timeout) never become ApiError:
    # the client only classifies responses it actually got. Show the same kind of page anyway.
    @app.exception_handler(httpx.HTTPError)
    async def transport_error_handler(request: Request, exc: httpx.HTTPError) -> Response:
        logger.error(
            "Could not reach Spotify at %s: %s",
            request.url.path,
            exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return _error_page(
            request,
            status.HTTP_502_BAD_GATEWAY,
            "Spotify unreachable",
            "We couldn't reach Spotify. Please try again later.",
        )

    # Last resort, same error page as everything else. Starlette still re-raises after this
    # (so uvicorn logs it too), the browser just gets HTML instead of "Internal Server Error".
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.exception(
            "Unhandled error at %s",
            request.url.path,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return _error_page(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Something went wrong",
            "An unexpected error occurred. Please try again later.",
        )

"""FastAPI application factory and uvicorn entry point."""

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from dwdedupe import __version__
from dwdedupe.api.exception_handlers import register_exception_handlers
from dwdedupe.api.routers import api_router
from dwdedupe.config import Settings, get_settings
from dwdedupe.infrastructure.lifecycle import lifespan
from dwdedupe.infrastructure.observability import RequestLoggingMiddleware

SESSION_COOKIE = "dwdedupe_session"


# Hey future me, tests call create_app(settings, transport=httpx.MockTransport(...)) to get an
# app wired to a fake Spotify. Production goes through run() with env settings and the real
# network. Middleware order: add_middleware() PREPENDS, so RequestLogging ends up outermost
# and every log line (session handling included) carries the correlation id.
def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use (defaults to the environment)
        transport: Optional httpx transport for every Spotify call

    Returns:
        Configured FastAPI app (resources are created in the lifespan)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="DW Dedupe",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.spotify_transport = transport

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE,
        same_site="lax",
        https_only=not settings.is_development,
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0" if not settings.is_development else "127.0.0.1",
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()

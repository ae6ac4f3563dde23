"""Sign-in routes: login page, logout and the Spotify OAuth redirect/callback pair."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from dwdedupe.api.dependencies import get_auth_service, get_database
from dwdedupe.api.templating import SESSION_STATE_KEY, SESSION_USER_KEY, templates
from dwdedupe.application.services import SpotifyAuthService
from dwdedupe.config.settings import CALLBACK_PATH, REDIRECT_PATH
from dwdedupe.infrastructure.persistence import Database, UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
async def login(request: Request) -> Response:
    """Login page, or straight home if already signed in."""
    if request.session.get(SESSION_USER_KEY):
        return RedirectResponse("/", status_code=302)
    return templates.TemplateResponse(
        request, "login.html", context={"authorize_path": REDIRECT_PATH}
    )


@router.get("/logout")
async def logout(request: Request) -> Response:
    request.session.clear()
    return RedirectResponse("/login", status_code=302)


# Hey future me - state goes into the session BEFORE we bounce the browser to Spotify.
# The callback pops it again; a second callback with the same state will fail the check.
@router.get(REDIRECT_PATH)
async def authorize_redirect(
    request: Request,
    auth: SpotifyAuthService = Depends(get_auth_service),
) -> Response:
    auth_request = auth.begin_authorization()
    request.session[SESSION_STATE_KEY] = auth_request.state
    return RedirectResponse(auth_request.authorization_url, status_code=302)


@router.get(CALLBACK_PATH)
async def authorize_callback(
    request: Request,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    auth: SpotifyAuthService = Depends(get_auth_service),
    db: Database = Depends(get_database),
) -> Response:
    """Finish sign-in and remember the user id in the session."""
    pending_state = request.session.pop(SESSION_STATE_KEY, None)
    # Committed before the redirect, so the home page always finds the new user.
    async with db.session_scope() as session:
        user = await auth.complete_authorization(
            returned_state=state,
            pending_state=pending_state,
            code=code,
            users=UserRepository(session),
            error=error,
        )
    request.session[SESSION_USER_KEY] = user.id
    return RedirectResponse("/", status_code=302)

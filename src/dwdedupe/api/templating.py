"""Templates and session keys shared by the HTML routers.

Hey future me - templates live in dwdedupe/templates. The path is computed relative to
THIS file so it works from the source tree and from an installed package alike.
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))

# Session keys. The cookie holds nothing but these two strings.
SESSION_USER_KEY = "user_id"
SESSION_STATE_KEY = "spotify_auth_state"

SPOTIFY_PLAYLIST_URL = "https://open.spotify.com/playlist/{}"


def playlist_url(playlist_id: str | None) -> str | None:
    """Link to a playlist in the Spotify web player."""
    if not playlist_id:
        return None
    return SPOTIFY_PLAYLIST_URL.format(playlist_id)


templates.env.globals["playlist_url"] = playlist_url

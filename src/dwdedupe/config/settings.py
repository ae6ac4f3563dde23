"""Application settings loaded from environment variables and .env."""

import string
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CALLBACK_PATH = "/spotify/authorize/callback"
REDIRECT_PATH = "/spotify/authorize/redirect"


# Hey future me - client_id and client_secret have NO defaults on purpose! If they're
# missing the app fails at startup instead of sending users to a broken Spotify page.
class SpotifySettings(BaseSettings):
    """Spotify API credentials and endpoints."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str
    client_secret: str
    scopes: str = "playlist-read-private playlist-modify-private"
    accounts_url: str = "https://accounts.spotify.com"
    api_url: str = "https://api.spotify.com/v1"
    timeout: float = 30.0
    # Discover Weekly is owned by Spotify's own curator account
    curator_id: str = "spotify"


class DatabaseSettings(BaseSettings):
    """User store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    url: str = "sqlite+aiosqlite:///./dwdedupe.db"
    echo: bool = False
    auto_create: bool = True


class SyncSettings(BaseSettings):
    """Dedupe sync engine and batch worker configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_", env_file=".env", extra="ignore"
    )

    playlist_name: str = "DW Dedupe"
    dev_suffix: str = " - dev"
    page_size: int = Field(default=50, ge=1, le=50)
    user_timeout_seconds: float = 120.0
    worker_enabled: bool = False
    interval_seconds: int = 24 * 60 * 60


class AuthSettings(BaseSettings):
    """OAuth state token shape."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_", env_file=".env", extra="ignore"
    )

    state_length: int = Field(default=32, ge=8)
    state_alphabet: str = string.ascii_lowercase


class Settings(BaseSettings):
    """Root settings object.

    Nested groups read their own prefixed variables (SPOTIFY_CLIENT_ID,
    DATABASE_URL, ...). Top-level values use bare names (ENVIRONMENT, PORT).
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: Literal["development", "production"] = "development"
    hostname: str = "localhost"
    port: int = 8000
    session_secret: str
    log_level: str = "INFO"
    log_json: bool = False

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)  # type: ignore[arg-type]
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def base_url(self) -> str:
        """Public base URL of this app (plain http only for local development)."""
        if self.is_development:
            return f"http://{self.hostname}:{self.port}"
        return f"https://{self.hostname}"

    @property
    def redirect_uri(self) -> str:
        """OAuth callback URL registered with Spotify."""
        return f"{self.base_url}{CALLBACK_PATH}"

    # Yo, this is the ONLY environment-sensitive bit of the sync engine. Dev and prod
    # share one Spotify account during testing, so dev must never touch the real playlist.
    @property
    def dedupe_playlist_name(self) -> str:
        if self.is_development:
            return f"{self.sync.playlist_name}{self.sync.dev_suffix}"
        return self.sync.playlist_name


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]

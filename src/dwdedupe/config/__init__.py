"""Configuration module for DW Dedupe."""

from .settings import (
    CALLBACK_PATH,
    REDIRECT_PATH,
    AuthSettings,
    DatabaseSettings,
    Settings,
    SpotifySettings,
    SyncSettings,
    get_settings,
)

__all__ = [
    "CALLBACK_PATH",
    "REDIRECT_PATH",
    "AuthSettings",
    "DatabaseSettings",
    "Settings",
    "SpotifySettings",
    "SyncSettings",
    "get_settings",
]

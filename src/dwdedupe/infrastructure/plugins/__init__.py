"""Service adapters on top of the raw integration clients."""

from dwdedupe.infrastructure.plugins.spotify_plugin import SpotifyPlugin

__all__ = ["SpotifyPlugin"]

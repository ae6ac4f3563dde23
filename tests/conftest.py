"""Shared fixtures: settings, an in-memory fake Spotify, database and wired services.

Hey future me - FakeSpotify is a tiny stateful Spotify behind httpx.MockTransport. It
understands exactly the endpoints the app calls (token, me, me/playlists, playlists,
tracks, users/{id}/playlists) and records every request in .requests so tests can
assert on call counts, headers and bodies. Inject failures with fail(method, path, status),
disconnect(method, path) for a transport error or garble(method, path) for a 200 with a
body of the wrong shape.
"""

import json
from collections.abc import AsyncGenerator, Iterator
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dwdedupe.application.services import (
    DedupeSyncService,
    SpotifyAuthService,
    UserLockRegistry,
)
from dwdedupe.application.workers import DedupeSyncWorker
from dwdedupe.config import DatabaseSettings, Settings, SpotifySettings
from dwdedupe.domain.entities import Credentials, User
from dwdedupe.infrastructure.integrations.spotify_client import SpotifyClient
from dwdedupe.infrastructure.persistence import Database
from dwdedupe.main import create_app

CURATOR = "spotify"


class FakeSpotify:
    """In-memory Spotify accounts service + Web API."""

    def __init__(self) -> None:
        self.display_names: dict[str, str] = {}
        self.playlists: dict[str, dict[str, Any]] = {}
        self.library: dict[str, list[str]] = {}
        self.codes: dict[str, str] = {}
        self.revoked_refresh_tokens: set[str] = set()
        self.rotate_refresh_tokens = False
        self.failures: dict[tuple[str, str], int] = {}
        self.unreachable: set[tuple[str, str]] = set()
        self.garbled: set[tuple[str, str]] = set()
        self.requests: list[httpx.Request] = []
        self._counter = 0

    # -- seeding --------------------------------------------------------------

    def add_user(self, user_id: str, display_name: str | None = None) -> str:
        self.display_names[user_id] = display_name or user_id.title()
        self.library.setdefault(user_id, [])
        return self.issue_code(user_id)

    def issue_code(self, user_id: str) -> str:
        code = f"code-{user_id}-{len(self.codes)}"
        self.codes[code] = user_id
        return code

    def add_playlist(
        self,
        owner: str,
        name: str,
        track_ids: list[str] | None = None,
        followers: list[str] | None = None,
        playlist_id: str | None = None,
    ) -> str:
        if playlist_id is None:
            self._counter += 1
            playlist_id = f"pl{self._counter}"
        self.playlists[playlist_id] = {
            "id": playlist_id,
            "name": name,
            "owner": owner,
            "tracks": list(track_ids or []),
        }
        for user_id in followers if followers is not None else [owner]:
            self.library.setdefault(user_id, []).append(playlist_id)
        return playlist_id

    def add_discover_weekly(self, user_id: str, track_ids: list[str]) -> str:
        return self.add_playlist(
            CURATOR, "Discover Weekly", track_ids, followers=[user_id], playlist_id=f"dw-{user_id}"
        )

    def disconnect(self, method: str, path: str) -> None:
        """Make a request fail at the transport level (httpx.ConnectError)."""
        self.unreachable.add((method, path))

    def garble(self, method: str, path: str) -> None:
        """Answer 200 with a body that is not the documented shape."""
        self.garbled.add((method, path))

    def fail(self, method: str, path: str, status: int) -> None:
        self.failures[(method, path)] = status

    # -- inspection -----------------------------------------------------------

    def tracks_of(self, playlist_id: str) -> list[str]:
        return list(self.playlists[playlist_id]["tracks"])

    def owned_by(self, user_id: str, name: str) -> list[str]:
        return [
            pid
            for pid, p in self.playlists.items()
            if p["owner"] == user_id and p["name"] == name
        ]

    def calls(self, method: str, path_prefix: str = "") -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix)
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # -- HTTP -----------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if (request.method, path) in self.unreachable:
            raise httpx.ConnectError("All connection attempts failed", request=request)
        if (request.method, path) in self.garbled:
            return httpx.Response(200, json={"unexpected": True})

        status = self.failures.get((request.method, path))
        if status is not None:
            return httpx.Response(status, json={"error": {"status": status, "message": "injected"}})

        if path == "/api/token":
            return self._token(request)

        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer at-"):
            return httpx.Response(401, json={"error": {"status": 401, "message": "No token"}})
        user_id = auth.removeprefix("Bearer at-")

        if not path.startswith("/v1/"):
            return httpx.Response(404)
        parts = path.removeprefix("/v1/").split("/")

        if parts == ["me"] and request.method == "GET":
            return httpx.Response(
                200, json={"id": user_id, "display_name": self.display_names.get(user_id)}
            )
        if parts == ["me", "playlists"] and request.method == "GET":
            return self._my_playlists(request, user_id)
        if parts == ["tracks"] and request.method == "GET":
            return self._tracks(request)
        if len(parts) == 3 and parts[0] == "users" and parts[2] == "playlists":
            return self._create_playlist(request, parts[1])
        if len(parts) >= 2 and parts[0] == "playlists":
            playlist = self.playlists.get(parts[1])
            if playlist is None:
                return httpx.Response(
                    404, json={"error": {"status": 404, "message": "Not found."}}
                )
            if len(parts) == 2 and request.method == "GET":
                return httpx.Response(200, json=self._detail(playlist))
            if len(parts) == 3 and parts[2] == "tracks" and request.method == "GET":
                limit = min(int(request.url.params.get("limit", "100")), self.PAGE_LIMIT)
                offset = int(request.url.params.get("offset", "0"))
                return httpx.Response(200, json=self._track_page(playlist, limit, offset))
            if len(parts) == 3 and parts[2] == "tracks":
                return self._mutate_tracks(request, playlist)

        return httpx.Response(404, json={"error": {"status": 404, "message": "Unknown route"}})

    def _token(self, request: httpx.Request) -> httpx.Response:
        if not request.headers.get("Authorization", "").startswith("Basic "):
            return httpx.Response(401, json={"error": "invalid_client"})
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

        if form.get("grant_type") == "authorization_code":
            user_id = self.codes.pop(form.get("code", ""), None)
            if user_id is None:
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid authorization code"},
                )
            return httpx.Response(
                200,
                json={
                    "access_token": f"at-{user_id}",
                    "refresh_token": f"rt-{user_id}",
                    "token_type": "Bearer",
                    "expires_in": 3600,
                    "scope": "playlist-read-private playlist-modify-private",
                },
            )

        if form.get("grant_type") == "refresh_token":
            refresh_token = form.get("refresh_token", "")
            if refresh_token in self.revoked_refresh_tokens or not refresh_token.startswith("rt-"):
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Refresh token revoked"},
                )
            user_id = refresh_token.removeprefix("rt-").split("#")[0]
            body: dict[str, Any] = {
                "access_token": f"at-{user_id}",
                "token_type": "Bearer",
                "expires_in": 3600,
            }
            if self.rotate_refresh_tokens:
                self._counter += 1
                body["refresh_token"] = f"rt-{user_id}#{self._counter}"
            return httpx.Response(200, json=body)

        return httpx.Response(400, json={"error": "unsupported_grant_type"})

    def _my_playlists(self, request: httpx.Request, user_id: str) -> httpx.Response:
        limit = int(request.url.params.get("limit", "20"))
        offset = int(request.url.params.get("offset", "0"))
        ids = self.library.get(user_id, [])
        items = [self._summary(self.playlists[pid]) for pid in ids[offset : offset + limit]]
        return httpx.Response(
            200, json={"items": items, "limit": limit, "offset": offset, "total": len(ids)}
        )

    def _create_playlist(self, request: httpx.Request, user_id: str) -> httpx.Response:
        body = json.loads(request.content)
        playlist_id = self.add_playlist(user_id, body["name"])
        return httpx.Response(201, json=self._detail(self.playlists[playlist_id]))

    def _mutate_tracks(self, request: httpx.Request, playlist: dict[str, Any]) -> httpx.Response:
        body = json.loads(request.content)
        if request.method == "POST":
            uris = body.get("uris") or []
            if not uris:
                return httpx.Response(400, json={"error": {"status": 400, "message": "No uris"}})
            playlist["tracks"].extend(uri.removeprefix("spotify:track:") for uri in uris)
        elif request.method == "DELETE":
            doomed = {t["uri"].removeprefix("spotify:track:") for t in body.get("tracks") or []}
            if not doomed:
                return httpx.Response(400, json={"error": {"status": 400, "message": "No tracks"}})
            playlist["tracks"] = [t for t in playlist["tracks"] if t not in doomed]
        else:
            return httpx.Response(405)
        self._counter += 1
        return httpx.Response(201, json={"snapshot_id": f"snap{self._counter}"})

    def _tracks(self, request: httpx.Request) -> httpx.Response:
        ids = request.url.params.get("ids", "").split(",")
        return httpx.Response(
            200,
            json={
                "tracks": [
                    {
                        "id": track_id,
                        "name": f"Song {track_id}",
                        "artists": [{"name": f"Artist {track_id}"}],
                        "album": {"name": f"Album {track_id}"},
                        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
                    }
                    for track_id in ids
                    if track_id
                ]
            },
        )

    @staticmethod
    def _summary(playlist: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": playlist["id"],
            "name": playlist["name"],
            "owner": {"id": playlist["owner"]},
            "tracks": {"total": len(playlist["tracks"])},
        }

    # Like the real API: the detail embeds at most PAGE_LIMIT tracks plus a "next" link,
    # the rest is only reachable through GET /playlists/{id}/tracks.
    PAGE_LIMIT = 100

    def _detail(self, playlist: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": playlist["id"],
            "name": playlist["name"],
            "owner": {"id": playlist["owner"]},
            "snapshot_id": "snap",
            "tracks": self._track_page(playlist, limit=self.PAGE_LIMIT, offset=0),
        }

    def _track_page(self, playlist: dict[str, Any], limit: int, offset: int) -> dict[str, Any]:
        ids = playlist["tracks"]
        has_more = offset + limit < len(ids)
        return {
            "items": [{"track": {"id": t}} for t in ids[offset : offset + limit]],
            "limit": limit,
            "offset": offset,
            "total": len(ids),
            "next": (
                f"https://api.spotify.com/v1/playlists/{playlist['id']}/tracks"
                f"?offset={offset + limit}&limit={limit}"
                if has_more
                else None
            ),
        }


def _make_user(user_id: str = "alice", **kwargs: Any) -> User:
    return User(
        id=user_id,
        credentials=Credentials(access_token=f"at-{user_id}", refresh_token=f"rt-{user_id}"),
        **kwargs,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="development",
        hostname="localhost",
        port=8000,
        session_secret="test-session-secret",
        spotify=SpotifySettings(client_id="client-id", client_secret="client-secret"),
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'dwdedupe.db'}"),
    )


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
async def spotify_client(
    settings: Settings, fake_spotify: FakeSpotify
) -> AsyncGenerator[SpotifyClient, None]:
    client = SpotifyClient(settings.spotify, settings.redirect_uri, transport=fake_spotify.transport)
    yield client
    await client.close()


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.database)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def sync_service(spotify_client: SpotifyClient, settings: Settings) -> DedupeSyncService:
    return DedupeSyncService(spotify_client, settings)


@pytest.fixture
def auth_service(
    spotify_client: SpotifyClient, settings: Settings, sync_service: DedupeSyncService
) -> SpotifyAuthService:
    return SpotifyAuthService(spotify_client, settings, sync_service)


@pytest.fixture
def sync_worker(
    database: Database,
    auth_service: SpotifyAuthService,
    sync_service: DedupeSyncService,
    settings: Settings,
) -> DedupeSyncWorker:
    return DedupeSyncWorker(database, auth_service, sync_service, UserLockRegistry(), settings)


@pytest.fixture
def app(settings: Settings, fake_spotify: FakeSpotify) -> FastAPI:
    return create_app(settings, transport=fake_spotify.transport)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user() -> Any:
    """Factory for users whose tokens the fake Spotify accepts."""
    return _make_user

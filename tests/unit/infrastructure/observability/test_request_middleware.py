"""Tests for RequestLoggingMiddleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from dwdedupe.infrastructure.observability import RequestLoggingMiddleware, get_correlation_id


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/echo")
    async def echo() -> dict[str, str]:
        return {"correlation_id": get_correlation_id()}

    return app


class TestRequestLoggingMiddleware:
    def test_generates_correlation_id(self) -> None:
        response = TestClient(_app()).get("/echo")

        header = response.headers["X-Correlation-ID"]
        assert len(header) == 36
        assert response.json()["correlation_id"] == header

    def test_honours_incoming_correlation_id(self) -> None:
        response = TestClient(_app()).get("/echo", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert response.json()["correlation_id"] == "abc-123"

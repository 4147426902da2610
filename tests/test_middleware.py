"""Tests for correlation ID middleware.

The middleware binds the inbound X-Correlation-ID to the request context so
that sinks and the audit trail can carry it.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from packages.audit_store import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def app() -> FastAPI:
    """Create test FastAPI app with middleware."""
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/echo")
    async def echo() -> dict:
        return {"correlation_id": get_correlation_id()}

    @app.get("/echo-sync")
    def echo_sync() -> dict:
        return {"correlation_id": get_correlation_id()}

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestCorrelationIdMiddleware:
    """Tests for CorrelationIdMiddleware."""

    def test_generates_uuid_when_header_absent(self, client: TestClient) -> None:
        response = client.get("/echo")
        assert response.status_code == 200

        correlation_id = response.headers["x-correlation-id"]
        assert len(correlation_id) == 36  # UUID format
        assert correlation_id.count("-") == 4
        assert response.json()["correlation_id"] == correlation_id

    def test_propagates_inbound_header(self, client: TestClient) -> None:
        response = client.get("/echo", headers={CORRELATION_ID_HEADER: "kc-req-42"})

        assert response.headers["x-correlation-id"] == "kc-req-42"
        assert response.json()["correlation_id"] == "kc-req-42"

    def test_visible_in_threadpool_endpoints(self, client: TestClient) -> None:
        """Sync endpoints run in the thread pool and still see the ID."""
        response = client.get("/echo-sync", headers={CORRELATION_ID_HEADER: "sync-1"})
        assert response.json()["correlation_id"] == "sync-1"

    def test_isolated_per_request(self, client: TestClient) -> None:
        id1 = client.get("/echo").headers["x-correlation-id"]
        id2 = client.get("/echo").headers["x-correlation-id"]

        assert id1 != id2


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_set_and_get_correlation_id(self) -> None:
        set_correlation_id("test-correlation-id")
        assert get_correlation_id() == "test-correlation-id"

    def test_get_correlation_id_returns_empty_when_not_set(self) -> None:
        set_correlation_id("")
        assert get_correlation_id() == ""

"""
API tests against the application factory in mock mode.

Each test gets its own app (and so its own cache and mock backend).
TestClient is used as a context manager so the lifespan runs.
"""

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from picklepro.config.settings import Settings
from picklepro.core.preload import RefreshError, ResourceName
from picklepro.infrastructure.snowflake.client import SnowflakeConnectionError
from picklepro.main import create_app


def make_settings(**overrides) -> Settings:
    values = {
        "snowflake_mock_mode": True,
        "debug_overlay_enabled": True,
        "preload_debounce_seconds": 30,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app():
    return create_app(make_settings())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:
    """Tests for liveness and readiness."""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["details"]["mock_mode"]["snowflake"] is True

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        checks = {check["name"]: check for check in body["checks"]}
        assert checks["database"]["status"] == "ok"
        assert "preload:programs" in checks
        assert "preload:logbook" in checks

    def test_readiness_when_backend_unreachable(self, app, client):
        @contextmanager
        def unreachable():
            raise SnowflakeConnectionError("Database connection failed: 250001")
            yield

        app.state.connection_factory = unreachable

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        checks = {check["name"]: check for check in body["checks"]}
        assert checks["configuration"]["status"] == "ok"
        assert checks["database"]["status"] == "error"
        assert checks["database"]["error"] == "Database connection failed: 250001"

    def test_readiness_without_credentials(self):
        app = create_app(make_settings(snowflake_mock_mode=False, snowflake_account=""))

        with TestClient(app) as client:
            response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        checks = {check["name"]: check for check in body["checks"]}
        assert checks["database"]["status"] == "error"


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

class TestData:
    """Tests for the resource endpoints."""

    def test_get_fetches_on_demand(self, client):
        response = client.get("/api/v1/data/coaches")

        assert response.status_code == 200
        body = response.json()
        assert body["resource"] == "coaches"
        assert body["error"] is None
        assert body["loading"] is False
        assert [coach["id"] for coach in body["items"]] == ["coach-maria", "coach-dev", "coach-sam"]
        assert body["items"][0]["hourly_rate"] == 85.0

    def test_get_serves_from_cache(self, app, client):
        client.post("/api/v1/data/preload")
        service = app.state.preloading_service

        response = client.get("/api/v1/data/programs")

        assert len(response.json()["items"]) == 2
        assert response.json()["items"][0]["routines"][0]["time_estimate"] == "15 min"
        assert service.get_cache_status().counts[ResourceName.PROGRAMS] == 2

    def test_unknown_resource_is_404(self, client):
        response = client.get("/api/v1/data/videos")

        assert response.status_code == 404
        assert "programs" in response.json()["detail"]

    def test_preload_all(self, client):
        response = client.post("/api/v1/data/preload")

        assert response.status_code == 200
        body = response.json()
        assert body["counts"] == {"programs": 2, "coaches": 3, "logbook": 3}
        assert body["errors"] == {"programs": None, "coaches": None, "logbook": None}

    def test_refresh(self, client):
        response = client.post("/api/v1/data/logbook/refresh")

        assert response.status_code == 200
        items = response.json()["items"]
        assert [entry["id"] for entry in items] == ["log-3", "log-2", "log-1"]
        assert items[1]["training_focus"] == ["Third shot drops"]

    def test_failed_refresh_is_502(self, app, client, monkeypatch):
        async def failing_refresh(name):
            raise RefreshError(ResourceName.COACHES, "network down")

        monkeypatch.setattr(app.state.preload_provider, "refresh_data", failing_refresh)

        response = client.post("/api/v1/data/coaches/refresh")

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to refresh coaches: network down"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class TestSession:
    """Tests for the sign-in/sign-out stand-ins."""

    def test_sign_in_and_out(self, client):
        assert client.get("/api/v1/session").json() == {"is_authenticated": False, "user_id": None}

        response = client.post("/api/v1/session/sign-in", json={"user_id": "demo-user"})
        assert response.json() == {"is_authenticated": True, "user_id": "demo-user"}

        response = client.post("/api/v1/session/sign-out")
        assert response.json() == {"is_authenticated": False, "user_id": None}

    def test_sign_in_requires_user_id(self, client):
        response = client.post("/api/v1/session/sign-in", json={"user_id": ""})

        assert response.status_code == 422

    def test_sign_out_clears_the_cache(self, client):
        client.post("/api/v1/data/preload")
        client.post("/api/v1/session/sign-in", json={"user_id": "demo-user"})

        client.post("/api/v1/session/sign-out")

        status = client.get("/debug/preload").json()["status"]
        assert status["cache"] == {"programs": 0, "coaches": 0, "logbook": 0}


# ---------------------------------------------------------------------------
# Debug overlay
# ---------------------------------------------------------------------------

class TestDebugOverlay:
    """Tests for the development-only overlay."""

    def test_overlay_when_enabled(self, client):
        client.post("/api/v1/data/preload")

        response = client.get("/debug/preload")

        assert response.status_code == 200
        body = response.json()
        assert body["all_loading"] is False
        assert body["status"]["cache"]["coaches"] == 3
        assert body["overlay"].splitlines()[0] == "Preload Status"
        assert "Coaches: 3 items ok" in body["overlay"]

    def test_hidden_when_disabled(self):
        app = create_app(make_settings(debug_overlay_enabled=False))

        with TestClient(app) as client:
            response = client.get("/debug/preload")

        assert response.status_code == 404

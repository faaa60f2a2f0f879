"""
Tests for the Users Service HTTP surface.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from shared.errors import StoreUnavailable
from service_users.app.main import UsersService
from service_users.app.persistence.postgres import UserStore


class TestUsersService:
    """Test cases for UsersService."""

    @pytest.fixture
    def users_service(self, user_store, redis_cache):
        """Create UsersService wired to SQLite and the Redis double."""
        return UsersService(store=user_store, cache=redis_cache)

    @pytest.fixture
    def client(self, users_service):
        """Create test client; entering it runs startup and shutdown."""
        with TestClient(users_service.app) as test_client:
            yield test_client

    def test_service_initialization(self, users_service):
        assert users_service.service_name == "users"
        assert users_service.directory is not None
        assert users_service.visits is not None
        assert users_service.app.state.users_service is users_service

    def test_api_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert "environment" in data

    def test_api_health_ignores_dependencies(self, client, fake_redis):
        fake_redis.down = True

        assert client.get("/api/health").status_code == 200

    def test_create_user(self, client):
        response = client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"})

        assert response.status_code == 201
        data = response.json()
        assert isinstance(data["id"], int)
        assert data["name"] == "Ana"
        assert data["email"] == "ana@x.com"
        assert data["created_at"]

    def test_created_user_is_listed(self, client):
        created = client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"}).json()

        response = client.get("/api/users")

        assert response.status_code == 200
        body = response.json()
        assert body["source"] in ("database", "cache")
        assert body["schema_version"] == 1
        assert created in body["data"]

    def test_consecutive_reads_hit_cache(self, client):
        client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"})
        client.post("/api/users", json={"name": "Bo", "email": "bo@x.com"})

        first = client.get("/api/users").json()
        second = client.get("/api/users").json()

        assert first["source"] == "database"
        assert second["source"] == "cache"
        assert first["data"] == second["data"]
        assert [u["name"] for u in first["data"]] == ["Bo", "Ana"]

    def test_create_invalidates_cache(self, client):
        client.get("/api/users")
        assert client.get("/api/users").json()["source"] == "cache"

        client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"})
        body = client.get("/api/users").json()

        assert body["source"] == "database"
        assert [u["email"] for u in body["data"]] == ["ana@x.com"]

    @pytest.mark.parametrize("payload", [
        {"name": "", "email": "ana@x.com"},
        {"name": "Ana", "email": "ana-at-x.com"},
        {"email": "ana@x.com"},
        {},
    ])
    def test_create_user_validation(self, client, payload):
        response = client.post("/api/users", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert client.get("/api/users").json()["data"] == []

    def test_malformed_body(self, client):
        response = client.post(
            "/api/users",
            content="not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_stats_counts_visits(self, client):
        totals = [client.get("/api/stats").json() for _ in range(3)]

        assert totals == [{"totalVisits": 1}, {"totalVisits": 2}, {"totalVisits": 3}]

    def test_stats_cache_down(self, client, fake_redis):
        fake_redis.down = True

        response = client.get("/api/stats")

        assert response.status_code == 500
        assert response.json()["code"] == "CACHE_UNAVAILABLE"

    def test_list_users_with_cache_down(self, client, fake_redis):
        client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"})
        fake_redis.down = True

        response = client.get("/api/users")

        assert response.status_code == 200
        assert response.json()["source"] == "database"
        assert len(response.json()["data"]) == 1

    def test_list_users_store_down(self, client, users_service):
        with patch.object(
            users_service.store,
            "list_users",
            new_callable=AsyncMock,
            side_effect=StoreUnavailable("Failed to query users")
        ):
            response = client.get("/api/users")

        assert response.status_code == 500
        assert response.json()["code"] == "STORE_UNAVAILABLE"

    def test_create_user_store_down(self, client, users_service, fake_redis):
        client.get("/api/users")
        with patch.object(
            users_service.store,
            "create_user",
            new_callable=AsyncMock,
            side_effect=StoreUnavailable("Failed to insert user")
        ):
            response = client.post("/api/users", json={"name": "Ana", "email": "ana@x.com"})

        assert response.status_code == 500
        assert "delete" not in fake_redis.calls

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_health_with_dependencies(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "users"
        assert data["dependencies"] == {"redis": "ok", "postgres": "ok"}

    def test_health_degraded_when_redis_down(self, client, fake_redis):
        fake_redis.down = True

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["dependencies"]["redis"] == "error"

    def test_metrics_endpoint(self, client):
        client.get("/api/users")
        client.get("/api/users")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'cache_hits_total{cache_type="users"} 1.0' in response.text
        assert 'cache_misses_total{cache_type="users"} 1.0' in response.text

    def test_frontend_served(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "user-form" in response.text
        assert client.get("/app.js").status_code == 200

    def test_shutdown_releases_resources(self, users_service, fake_redis):
        with TestClient(users_service.app):
            pass

        assert fake_redis.closed is True
        assert users_service.store.engine is None


class TestUsersServiceStartup:
    """Startup behaviour when dependencies are unavailable."""

    def test_starts_with_database_down(self, redis_cache, tmp_path):
        store = UserStore(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'users.db'}")
        service = UsersService(store=store, cache=redis_cache)

        with TestClient(service.app) as client:
            assert client.get("/api/health").status_code == 200
            response = client.get("/api/users")

        assert response.status_code == 500
        assert response.json()["code"] == "STORE_UNAVAILABLE"

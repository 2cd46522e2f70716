"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from tenant_migrator.api.dependencies import (
    StoreClients,
    get_config,
    get_identity_provider,
    get_store_clients,
)
from tenant_migrator.api.main import app
from tenant_migrator.services.cancellation import default_run_lock
from tenant_migrator.stores.memory import InMemoryQueryClient

from tests.factories import FakeIdentityProvider, legacy_transaction, legacy_user

ENV_VARS = ("V1_SUPABASE_URL", "V1_SUPABASE_SERVICE_KEY", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")


@pytest.fixture
def stores() -> StoreClients:
    source = InMemoryQueryClient(name="source", tables={
        "users": [legacy_user("src-a", "a@x.com")],
        "transactions": [legacy_transaction("t1", "src-a")],
    })
    destination = InMemoryQueryClient(name="destination", tables={
        "users": [
            {"id": "op-admin", "email": "admin@x.com", "auth_user_id": "auth-admin"},
            {"id": "op-member", "email": "member@x.com", "auth_user_id": "auth-member"},
        ],
        "user_roles": [{"user_id": "op-admin", "role": "admin"}],
    })
    return StoreClients(source=source, destination=destination)


@pytest.fixture
def client(stores, config):
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_store_clients] = lambda: stores
    app.dependency_overrides[get_identity_provider] = lambda: FakeIdentityProvider({
        "admin-token": "auth-admin",
        "member-token": "auth-member",
    })
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRunEndpoint:
    def test_success(self, client, stores) -> None:
        response = client.post("/api/migrations/run", headers={"Authorization": "Bearer admin-token"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Migration completed"
        assert body["stats"]["users"] == {"migrated": 1, "failed": 0, "skipped": 0}
        assert body["stats"]["transactions"] == {"migrated": 1, "failed": 0}
        assert body["stats"]["errors"] == []
        assert body["stats"]["operator_id"] == "op-admin"
        assert len(stores.destination.rows("system_logs")) == 1

    def test_missing_token(self, client) -> None:
        response = client.post("/api/migrations/run")
        assert response.status_code == 401
        assert response.json() == {"error": "Authorization required"}

    def test_invalid_token(self, client) -> None:
        response = client.post("/api/migrations/run", headers={"Authorization": "Bearer forged"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid authentication"}

    def test_insufficient_role_reads_nothing(self, client, stores) -> None:
        response = client.post("/api/migrations/run", headers={"Authorization": "Bearer member-token"})

        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}
        assert stores.source.calls == []
        assert stores.destination.rows("system_logs") == []

    def test_run_in_progress(self, client) -> None:
        with default_run_lock.hold():
            response = client.post("/api/migrations/run", headers={"Authorization": "Bearer admin-token"})

        assert response.status_code == 409
        assert response.json() == {"error": "Migration already in progress"}


class TestConfigurationErrors:
    @pytest.fixture
    def unconfigured_client(self, monkeypatch, stores):
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        app.dependency_overrides[get_store_clients] = lambda: stores
        app.dependency_overrides[get_identity_provider] = lambda: FakeIdentityProvider()
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_missing_source_credentials(self, unconfigured_client) -> None:
        response = unconfigured_client.post("/api/migrations/run", headers={"Authorization": "Bearer x"})
        assert response.status_code == 400
        assert response.json() == {"error": "V1 Supabase credentials not configured"}

    def test_missing_destination_credentials(self, unconfigured_client, monkeypatch) -> None:
        monkeypatch.setenv("V1_SUPABASE_URL", "https://v1.example.supabase.co")
        monkeypatch.setenv("V1_SUPABASE_SERVICE_KEY", "v1-key")

        response = unconfigured_client.post("/api/migrations/run", headers={"Authorization": "Bearer x"})

        assert response.status_code == 500
        assert response.json() == {"error": "V2 Supabase credentials not available"}


class TestHealth:
    def test_health(self) -> None:
        response = TestClient(app).get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "migration_running": False}

"""
Shared pytest fixtures for the tenant migrator tests.

- source_store / destination_store: in-memory query clients shaped like the
  V1 and V2 stores
- run_lock: a private RunLock so tests never contend on the shared one
- config: a valid MigrationConfig
"""

import pytest

from tenant_migrator.models.migration import MigrationConfig
from tenant_migrator.services.cancellation import RunLock
from tenant_migrator.stores.memory import InMemoryQueryClient


@pytest.fixture
def source_store() -> InMemoryQueryClient:
    return InMemoryQueryClient(name="source")


@pytest.fixture
def destination_store() -> InMemoryQueryClient:
    return InMemoryQueryClient(
        name="destination",
        unique={"users": [("email",), ("v1_id",)]},
    )


@pytest.fixture
def run_lock() -> RunLock:
    return RunLock()


@pytest.fixture
def config() -> MigrationConfig:
    return MigrationConfig(
        source_url="https://v1.example.supabase.co",
        source_key="v1-service-key",
        destination_url="https://v2.example.supabase.co",
        destination_key="v2-service-key",
    )



"""FastAPI dependencies; overridden in tests."""

from dataclasses import dataclass
from typing import Iterator

from fastapi import Depends

from ..auth import IdentityProvider, SupabaseIdentityProvider
from ..models.migration import MigrationConfig
from ..stores.base import QueryClient
from ..stores.rest_client import RestQueryClient


@dataclass
class StoreClients:
    source: QueryClient
    destination: QueryClient


def get_config() -> MigrationConfig:
    """Configuration from the environment, validated before any data access."""
    config = MigrationConfig.from_env()
    config.validate()
    return config


def get_store_clients(config: MigrationConfig = Depends(get_config)) -> Iterator[StoreClients]:
    def client(name: str, url: str, key: str) -> RestQueryClient:
        return RestQueryClient(
            name,
            url,
            key,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )

    source = client("source", config.source_url, config.source_key)
    destination = client("destination", config.destination_url, config.destination_key)
    try:
        yield StoreClients(source=source, destination=destination)
    finally:
        source.close()
        destination.close()


def get_identity_provider(config: MigrationConfig = Depends(get_config)) -> IdentityProvider:
    return SupabaseIdentityProvider(config.destination_url, config.destination_key)

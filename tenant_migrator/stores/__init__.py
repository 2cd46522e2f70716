"""Query clients for the source and destination stores."""

from .base import QueryClient, Row
from .memory import InMemoryQueryClient
from .rest_client import RestQueryClient

__all__ = [
    "QueryClient",
    "Row",
    "InMemoryQueryClient",
    "RestQueryClient",
]

"""Entity migrators, one per entity kind."""

from .base import BaseMigrator
from .connections import CONNECTION_TABLES, ConnectionMigrator, connection_migrators
from .transactions import TransactionMigrator
from .users import UserMigrator

__all__ = [
    "BaseMigrator",
    "CONNECTION_TABLES",
    "ConnectionMigrator",
    "connection_migrators",
    "TransactionMigrator",
    "UserMigrator",
]

"""Data models for the migration engine."""

from .migration import (
    ConflictPolicy,
    ConnectionStats,
    MigrationConfig,
    MigrationRun,
    MigrationStats,
    MigrationStatus,
    TransactionStats,
    UserStats,
)
from .record import (
    LEGACY_ID,
    PROVENANCE_FLAG,
    InsertOutcome,
    InsertResult,
    SelectQuery,
)
from .legacy import (
    LegacyRow,
    LegacyTransaction,
    LegacyUser,
)

__all__ = [
    "ConflictPolicy",
    "ConnectionStats",
    "MigrationConfig",
    "MigrationRun",
    "MigrationStats",
    "MigrationStatus",
    "TransactionStats",
    "UserStats",
    "LEGACY_ID",
    "PROVENANCE_FLAG",
    "InsertOutcome",
    "InsertResult",
    "SelectQuery",
    "LegacyRow",
    "LegacyTransaction",
    "LegacyUser",
]

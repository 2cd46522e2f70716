"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from enum import Enum
from datetime import datetime
import os
import uuid

from ..exceptions import ConfigurationError


class MigrationStatus(str, Enum):
    """Phase of a migration run."""
    IDLE = "idle"
    FETCHING_USERS = "fetching_users"
    BUILDING_REMAP = "building_remap"
    FETCHING_TRANSACTIONS = "fetching_transactions"
    FETCHING_CONNECTIONS = "fetching_connections"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ConflictPolicy(str, Enum):
    """How connection migrators treat rejected inserts."""
    SILENT_DROP = "silent_drop"  # Conflicts and other errors are dropped unreported
    REPORT_ERRORS = "report_errors"  # Conflicts dropped, other errors recorded


@dataclass
class UserStats:
    migrated: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"migrated": self.migrated, "failed": self.failed, "skipped": self.skipped}


@dataclass
class TransactionStats:
    migrated: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"migrated": self.migrated, "failed": self.failed}


@dataclass
class ConnectionStats:
    telegram: int = 0
    whatsapp: int = 0
    bank: int = 0

    def increment(self, kind: str) -> None:
        if kind not in ("telegram", "whatsapp", "bank"):
            raise ValueError(f"Unknown connection kind: {kind}")
        setattr(self, kind, getattr(self, kind) + 1)

    @property
    def total(self) -> int:
        return self.telegram + self.whatsapp + self.bank

    def to_dict(self) -> Dict[str, int]:
        return {"telegram": self.telegram, "whatsapp": self.whatsapp, "bank": self.bank}


@dataclass
class MigrationStats:
    """Append-only counters and error lines, one section per entity kind."""
    users: UserStats = field(default_factory=UserStats)
    transactions: TransactionStats = field(default_factory=TransactionStats)
    connections: ConnectionStats = field(default_factory=ConnectionStats)
    errors: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": self.users.to_dict(),
            "transactions": self.transactions.to_dict(),
            "connections": self.connections.to_dict(),
            "errors": list(self.errors),
        }


@dataclass
class MigrationRun:
    """
    One end-to-end invocation of the orchestrator.

    Owned by the orchestrator; migrators receive it, mutate ``stats`` and
    hand it back.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.IDLE
    operator_id: Optional[str] = None

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    stats: MigrationStats = field(default_factory=MigrationStats)

    @property
    def errors(self) -> List[str]:
        return self.stats.errors

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return max(0.0, (self.completed_at - self.started_at).total_seconds())
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot used for the audit record and the response payload."""
        data = {
            "id": self.id,
            "status": self.status.value,
            "operator_id": self.operator_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration_seconds,
        }
        data.update(self.stats.to_dict())
        return data


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class MigrationConfig:
    """Configuration for a migration run."""
    # Source (V1) store
    source_url: Optional[str] = None
    source_key: Optional[str] = None

    # Destination (V2) store
    destination_url: Optional[str] = None
    destination_key: Optional[str] = None

    # Execution options
    batch_size: int = 500
    timeout_seconds: Optional[float] = None  # Whole-run budget
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 0.5
    preserve_user_ids: bool = True
    connection_policy: ConflictPolicy = ConflictPolicy.SILENT_DROP

    def validate(self) -> None:
        """Raise ConfigurationError if either store is not configured."""
        if not self.source_url or not self.source_key:
            raise ConfigurationError("V1 Supabase credentials not configured", status_code=400)
        if not self.destination_url or not self.destination_key:
            raise ConfigurationError("V2 Supabase credentials not available", status_code=500)
        if self.batch_size < 1:
            raise ConfigurationError(f"Invalid batch size: {self.batch_size}", status_code=400)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (credentials omitted)."""
        return {
            "source_url": self.source_url,
            "destination_url": self.destination_url,
            "batch_size": self.batch_size,
            "timeout_seconds": self.timeout_seconds,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "backoff_factor": self.backoff_factor,
            "preserve_user_ids": self.preserve_user_ids,
            "connection_policy": self.connection_policy.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            source_url=data.get("source_url"),
            source_key=data.get("source_key"),
            destination_url=data.get("destination_url"),
            destination_key=data.get("destination_key"),
            batch_size=int(data.get("batch_size", 500)),
            timeout_seconds=data.get("timeout_seconds"),
            request_timeout=float(data.get("request_timeout", 30.0)),
            max_retries=int(data.get("max_retries", 3)),
            backoff_factor=float(data.get("backoff_factor", 0.5)),
            preserve_user_ids=bool(data.get("preserve_user_ids", True)),
            connection_policy=ConflictPolicy(data.get("connection_policy", ConflictPolicy.SILENT_DROP.value)),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MigrationConfig":
        """Create from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            source_url=env.get("V1_SUPABASE_URL"),
            source_key=env.get("V1_SUPABASE_SERVICE_KEY"),
            destination_url=env.get("SUPABASE_URL"),
            destination_key=env.get("SUPABASE_SERVICE_ROLE_KEY"),
            batch_size=int(env.get("MIGRATION_BATCH_SIZE") or 500),
            timeout_seconds=_env_float(env.get("MIGRATION_TIMEOUT_SECONDS")),
            request_timeout=_env_float(env.get("MIGRATION_REQUEST_TIMEOUT")) or 30.0,
            max_retries=int(env.get("MIGRATION_MAX_RETRIES") or 3),
            preserve_user_ids=_env_bool(env.get("MIGRATION_PRESERVE_USER_IDS"), True),
            connection_policy=ConflictPolicy(
                env.get("MIGRATION_CONNECTION_POLICY") or ConflictPolicy.SILENT_DROP.value
            ),
        )

"""Service layer for the migration engine."""

from .audit import AuditLogger
from .cancellation import CancellationToken, RunLock, default_run_lock
from .remap import IdentifierRemap
from .transformer import stamp_connection, transform_transaction, transform_user

__all__ = [
    "AuditLogger",
    "CancellationToken",
    "RunLock",
    "default_run_lock",
    "IdentifierRemap",
    "stamp_connection",
    "transform_transaction",
    "transform_user",
]

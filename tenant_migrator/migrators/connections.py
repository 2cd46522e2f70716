"""Connection migrators (telegram, whatsapp, bank)."""

import logging
from typing import Optional

from .base import BaseMigrator
from ..exceptions import StoreError
from ..models.migration import ConflictPolicy, MigrationRun
from ..models.record import InsertOutcome, InsertResult
from ..services.cancellation import CancellationToken
from ..services.transformer import stamp_connection
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)

# Kind -> table, in the order they are migrated
CONNECTION_TABLES = {
    "telegram": "telegram_connections",
    "whatsapp": "whatsapp_connections",
    "bank": "bank_connections",
}


def should_report(result: InsertResult, policy: ConflictPolicy) -> bool:
    """Whether a rejected insert is recorded as an error under policy."""
    if result.ok or policy == ConflictPolicy.SILENT_DROP:
        return False
    return result.outcome == InsertOutcome.OTHER_ERROR


class ConnectionMigrator(BaseMigrator):
    """
    Copies one small connection table row by row.

    A rejected insert, or one that raises, is assumed to be a row migrated by
    an earlier run and is dropped; only successful inserts are counted.
    """

    def __init__(
        self,
        kind: str,
        source: QueryClient,
        destination: QueryClient,
        cancellation: Optional[CancellationToken] = None,
        policy: ConflictPolicy = ConflictPolicy.SILENT_DROP
    ):
        if kind not in CONNECTION_TABLES:
            raise ValueError(f"Unknown connection kind: {kind}")
        super().__init__(source, destination, cancellation)
        self.kind = kind
        self.table = CONNECTION_TABLES[kind]
        self.policy = policy
        self.entity = self.table

    def migrate(self, run: MigrationRun) -> MigrationRun:
        stats = run.stats
        self.check_cancelled()

        try:
            rows = self.source.select(self.table)
        except StoreError as e:
            logger.warning(f"Skipping {self.entity}, fetch failed: {e.message}")
            return run

        copied = 0
        for row in rows:
            try:
                result = self.destination.insert(self.table, stamp_connection(row))
            except Exception as e:
                result = InsertResult.failed(str(e))

            if result.ok:
                copied += 1
                stats.connections.increment(self.kind)
            elif should_report(result, self.policy):
                stats.add_error(f"Failed to migrate {self.kind} connection {row.get('id')}: {result.reason}")
                logger.error(f"Failed to migrate {self.kind} connection {row.get('id')}: {result.reason}")
            else:
                logger.debug(f"Dropped {self.kind} connection {row.get('id')}: {result.reason}")

        logger.info(f"Copied {copied} of {len(rows)} rows into {self.entity}")
        return run


def connection_migrators(
    source: QueryClient,
    destination: QueryClient,
    cancellation: Optional[CancellationToken] = None,
    policy: ConflictPolicy = ConflictPolicy.SILENT_DROP
):
    """One migrator per connection kind, in fixed order."""
    return [
        ConnectionMigrator(kind, source, destination, cancellation, policy)
        for kind in CONNECTION_TABLES
    ]

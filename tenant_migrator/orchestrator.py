"""Migration orchestrator - sequences the entity migrators for one run."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .exceptions import MigrationCancelled, StoreError
from .models.migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
)
from .migrators.connections import connection_migrators
from .migrators.transactions import TransactionMigrator
from .migrators.users import UserMigrator
from .services.audit import AuditLogger
from .services.cancellation import CancellationToken, RunLock, default_run_lock
from .services.remap import IdentifierRemap
from .stores.base import QueryClient
from .stores.rest_client import RestQueryClient

logger = logging.getLogger(__name__)


class MigrationOrchestrator:
    """
    Orchestrates one V1 to V2 migration run.

    Phases, strictly sequential:
    - Users (idempotent by email)
    - Identifier remap, rebuilt from migrated destination users
    - Transactions, paged and bulk-inserted
    - Telegram, WhatsApp and bank connections
    - Finalize: duration and one audit record

    A failure inside a phase is recorded on the run and the next phase
    starts. Cancellation, an exhausted time budget or an unexpected
    exception abort the run; an audit record with the partial statistics is
    still written before the exception propagates.
    """

    def __init__(
        self,
        source: QueryClient,
        destination: QueryClient,
        config: Optional[MigrationConfig] = None,
        run_lock: Optional[RunLock] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Client bound to the legacy store
            destination: Client bound to the new store
            config: Execution options (batch size, time budget, policies)
            run_lock: Lock enforcing one concurrent run
            clock: Source of timezone-aware timestamps
        """
        self.source = source
        self.destination = destination
        self.config = config or MigrationConfig()
        self.run_lock = run_lock or default_run_lock
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.audit = AuditLogger(destination)
        self.cancellation = CancellationToken(self.config.timeout_seconds)

        # Runtime state
        self.run: Optional[MigrationRun] = None
        self.remap: Optional[IdentifierRemap] = None

    @classmethod
    def from_config(cls, config: MigrationConfig, **kwargs) -> "MigrationOrchestrator":
        """Create an orchestrator with REST clients for both stores."""
        config.validate()
        source = RestQueryClient(
            "source",
            config.source_url,
            config.source_key,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )
        destination = RestQueryClient(
            "destination",
            config.destination_url,
            config.destination_key,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )
        return cls(source, destination, config, **kwargs)

    def cancel(self, reason: str = "Migration cancelled") -> None:
        """
        Request cancellation of the active run, or of the next run if none is
        active. Honored at the next row, page or phase boundary.
        """
        self.cancellation.cancel(reason)

    def run_migration(self, operator_id: Optional[str] = None) -> MigrationRun:
        """
        Run the complete migration.

        Args:
            operator_id: Destination user id of the invoking operator

        Returns:
            MigrationRun with results and statistics

        Raises:
            MigrationInProgressError: If another run holds the lock
            MigrationCancelled: If cancelled or over the time budget
        """
        with self.run_lock.hold():
            self.cancellation.start()
            try:
                return self._run(operator_id)
            finally:
                # Next run gets a full budget and no carried-over cancel
                self.cancellation = CancellationToken(self.config.timeout_seconds)

    def _run(self, operator_id: Optional[str]) -> MigrationRun:
        run = MigrationRun(operator_id=operator_id)
        run.started_at = self.clock()
        self.run = run

        try:
            logger.info("=== PHASE 1: USERS ===")
            self._enter(run, MigrationStatus.FETCHING_USERS)
            run = self._user_migrator().migrate(run)

            logger.info("=== PHASE 2: IDENTIFIER REMAP ===")
            self._enter(run, MigrationStatus.BUILDING_REMAP)
            self.remap = self._build_remap(run)

            logger.info("=== PHASE 3: TRANSACTIONS ===")
            self._enter(run, MigrationStatus.FETCHING_TRANSACTIONS)
            run = self._transaction_migrator(self.remap).migrate(run)

            logger.info("=== PHASE 4: CONNECTIONS ===")
            self._enter(run, MigrationStatus.FETCHING_CONNECTIONS)
            for migrator in connection_migrators(
                self.source,
                self.destination,
                self.cancellation,
                self.config.connection_policy,
            ):
                run = migrator.migrate(run)

            self._enter(run, MigrationStatus.FINALIZING)

        except MigrationCancelled as e:
            run.status = MigrationStatus.CANCELLED
            run.stats.add_error(e.message)
            logger.error(f"Migration cancelled: {e.message}")
            self._finalize(run, aborted=True)
            raise

        except Exception as e:
            failed_in = run.status.value
            run.status = MigrationStatus.FAILED
            run.stats.add_error(f"Migration failed during {failed_in}: {e}")
            logger.error(f"Migration failed: {e}")
            self._finalize(run, aborted=True)
            raise

        run.status = MigrationStatus.DONE
        self._finalize(run)
        logger.info("=== MIGRATION COMPLETED ===")
        return run

    def _enter(self, run: MigrationRun, status: MigrationStatus) -> None:
        self.cancellation.raise_if_cancelled()
        run.status = status

    def _user_migrator(self) -> UserMigrator:
        return UserMigrator(
            self.source,
            self.destination,
            self.cancellation,
            preserve_ids=self.config.preserve_user_ids,
            clock=self.clock,
        )

    def _transaction_migrator(self, remap: IdentifierRemap) -> TransactionMigrator:
        return TransactionMigrator(
            self.source,
            self.destination,
            remap,
            self.cancellation,
            page_size=self.config.batch_size,
        )

    def _build_remap(self, run: MigrationRun) -> IdentifierRemap:
        try:
            return IdentifierRemap.build(self.destination)
        except StoreError as e:
            # Without a remap every transaction is an orphan
            run.stats.add_error(f"Error building user id map: {e.message}")
            logger.error(f"Error building user id map: {e.message}")
            return IdentifierRemap()

    def _finalize(self, run: MigrationRun, aborted: bool = False) -> None:
        run.completed_at = self.clock()
        self.audit.record(run, aborted=aborted)
        logger.info(
            f"Run {run.id} {run.status.value} in {run.duration_seconds:.2f}s: "
            f"users {run.stats.users.migrated} migrated / {run.stats.users.skipped} skipped, "
            f"transactions {run.stats.transactions.migrated} migrated, "
            f"connections {run.stats.connections.total} total"
        )

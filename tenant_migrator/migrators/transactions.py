"""Transaction migrator."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .base import BaseMigrator
from ..exceptions import StoreError
from ..models.legacy import LegacyTransaction
from ..models.migration import MigrationRun
from ..models.record import SelectQuery
from ..services.cancellation import CancellationToken
from ..services.remap import IdentifierRemap
from ..services.transformer import transform_transaction
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"
DEFAULT_PAGE_SIZE = 500


class TransactionMigrator(BaseMigrator):
    """
    Pages through V1 transactions and bulk-inserts each page into V2.

    Rows whose owner is missing from the remap table are dropped without
    being counted. There is no per-row existence check, so re-running after
    a partial success inserts already-copied pages again unless the
    destination enforces its own uniqueness.
    """

    entity = "transactions"

    def __init__(
        self,
        source: QueryClient,
        destination: QueryClient,
        remap: IdentifierRemap,
        cancellation: Optional[CancellationToken] = None,
        page_size: int = DEFAULT_PAGE_SIZE
    ):
        super().__init__(source, destination, cancellation)
        self.remap = remap
        self.page_size = page_size

    def migrate(self, run: MigrationRun) -> MigrationRun:
        stats = run.stats
        query = SelectQuery(order_by="date", ascending=True)
        pages = self.source.stream(TRANSACTIONS_TABLE, self.page_size, query)
        processed = 0

        while True:
            self.check_cancelled()
            try:
                page = next(pages, None)
            except StoreError as e:
                stats.add_error(f"Error fetching V1 transactions: {e.message}")
                logger.error(f"Error fetching V1 transactions: {e.message}")
                break

            if page is None:
                break

            self._migrate_page(page, run)
            processed += len(page)
            logger.info(f"  Processed {processed} {self.entity}...")

        logger.info(
            f"Transactions: {stats.transactions.migrated} migrated, "
            f"{stats.transactions.failed} failed"
        )
        return run

    def transform_page(self, page: List[Dict[str, Any]], run: MigrationRun) -> List[Dict[str, Any]]:
        """
        Drop orphaned rows and transform the rest.

        A row that fails validation is counted as failed on its own; the
        remaining rows of the page are still returned.
        """
        stats = run.stats
        batch = []
        for row in page:
            owner_id = self.remap.get(row.get("user_id"))
            if owner_id is None:
                continue
            try:
                tx = LegacyTransaction.model_validate(row)
            except ValidationError as e:
                stats.add_error(f"Error migrating transaction {row.get('id')}: {e}")
                stats.transactions.failed += 1
                logger.error(f"Error migrating transaction {row.get('id')}: {e}")
                continue
            batch.append(transform_transaction(tx, owner_id))
        return batch

    def _migrate_page(self, page: List[Dict[str, Any]], run: MigrationRun) -> None:
        stats = run.stats
        batch = self.transform_page(page, run)
        if not batch:
            return

        result = self.destination.insert(TRANSACTIONS_TABLE, batch)
        if not result.ok:
            stats.add_error(f"Batch insert error: {result.reason}")
            stats.transactions.failed += len(batch)
            logger.error(f"Batch insert error: {result.reason}")
        else:
            stats.transactions.migrated += len(batch)

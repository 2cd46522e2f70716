"""User migrator."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .base import BaseMigrator
from ..exceptions import StoreError
from ..models.legacy import LegacyUser
from ..models.migration import MigrationRun
from ..models.record import SelectQuery
from ..services.cancellation import CancellationToken
from ..services.transformer import transform_user
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)

USERS_TABLE = "users"


class UserMigrator(BaseMigrator):
    """
    Copies V1 users that are not yet present in V2.

    Presence is decided by email alone, so a user migrated by an earlier
    partial run is skipped rather than inserted twice.
    """

    entity = "users"

    def __init__(
        self,
        source: QueryClient,
        destination: QueryClient,
        cancellation: Optional[CancellationToken] = None,
        preserve_ids: bool = True,
        clock: Optional[Callable[[], datetime]] = None
    ):
        super().__init__(source, destination, cancellation)
        self.preserve_ids = preserve_ids
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def migrate(self, run: MigrationRun) -> MigrationRun:
        stats = run.stats

        try:
            rows = self.source.select(USERS_TABLE, SelectQuery(order_by="created_at", ascending=True))
        except StoreError as e:
            stats.add_error(f"Error fetching V1 users: {e.message}")
            logger.error(f"Error fetching V1 users: {e.message}")
            return run

        logger.info(f"Found {len(rows)} {self.entity} in V1")

        for row in rows:
            self.check_cancelled()
            self._migrate_row(row, run)

        logger.info(
            f"Users: {stats.users.migrated} migrated, {stats.users.skipped} skipped, "
            f"{stats.users.failed} failed"
        )
        return run

    def _migrate_row(self, row: Dict[str, Any], run: MigrationRun) -> None:
        stats = run.stats
        email = row.get("email")

        try:
            user = LegacyUser.model_validate(row)

            existing = self.destination.lookup_one(USERS_TABLE, {"email": user.email}, columns="id")
            if existing:
                stats.users.skipped += 1
                return

            v2_user = transform_user(user, now=self.clock(), preserve_id=self.preserve_ids)
            result = self.destination.insert(USERS_TABLE, v2_user)

            if not result.ok:
                stats.add_error(f"Failed to migrate user {email}: {result.reason}")
                stats.users.failed += 1
                logger.error(f"Failed to migrate user {email}: {result.reason}")
            else:
                stats.users.migrated += 1

        except Exception as e:
            stats.add_error(f"Error migrating user {row.get('id')}: {e}")
            stats.users.failed += 1
            logger.error(f"Error migrating user {row.get('id')}: {e}")

"""Audit-log writer for completed and aborted runs."""

import logging
from typing import Any, Dict

from ..models.migration import MigrationRun
from ..models.record import InsertResult
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)

SYSTEM_LOGS_TABLE = "system_logs"
COMPLETED_MESSAGE = "V1 to V2 migration completed"
ABORTED_MESSAGE = "V1 to V2 migration aborted"


class AuditLogger:
    """Appends one ``system_logs`` row per run to the destination store."""

    def __init__(self, destination: QueryClient, table: str = SYSTEM_LOGS_TABLE):
        self.destination = destination
        self.table = table

    def build_entry(self, run: MigrationRun, aborted: bool = False) -> Dict[str, Any]:
        return {
            "level": "error" if aborted else "info",
            "category": "system",
            "message": ABORTED_MESSAGE if aborted else COMPLETED_MESSAGE,
            "metadata": run.to_dict(),
            "user_id": run.operator_id,
        }

    def record(self, run: MigrationRun, aborted: bool = False) -> InsertResult:
        """Write the run snapshot. A failed write is logged, not raised."""
        result = self.destination.insert(self.table, self.build_entry(run, aborted))
        if not result.ok:
            logger.error(f"Failed to write audit record for run {run.id}: {result.reason}")
        else:
            logger.info(f"Wrote audit record for run {run.id}")
        return result

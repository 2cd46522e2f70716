"""In-memory query client for tests and local rehearsals."""

import copy
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .base import QueryClient, Row
from ..exceptions import StoreError
from ..models.record import InsertOutcome, InsertResult, SelectQuery

logger = logging.getLogger(__name__)


@dataclass
class _InsertFailure:
    reason: str
    outcome: InsertOutcome
    match: Optional[Callable[[Row], bool]]


@dataclass
class _SelectFailure:
    reason: str
    after: int  # Successful selects allowed before failing


class InMemoryQueryClient(QueryClient):
    """
    Query client backed by a dict of row lists.

    Mirrors the behavior the migrators rely on from a real store: auto
    generated ids, unique constraints reported as conflicts, all-or-nothing
    bulk inserts, and inclusive range pagination. Failures and latency can be
    injected for tests.
    """

    def __init__(
        self,
        name: str = "memory",
        tables: Optional[Dict[str, List[Row]]] = None,
        unique: Optional[Dict[str, Sequence[Sequence[str]]]] = None,
        latency: float = 0.0
    ):
        """
        Initialize the client.

        Args:
            name: Label used in log messages
            tables: Initial rows per table (copied)
            unique: Unique constraints per table, each a tuple of column names
            latency: Seconds to sleep on every call
        """
        super().__init__(name)
        self.tables: Dict[str, List[Row]] = {
            table: [copy.deepcopy(row) for row in rows]
            for table, rows in (tables or {}).items()
        }
        self.unique: Dict[str, List[Tuple[str, ...]]] = {
            table: [tuple(cols) for cols in constraints]
            for table, constraints in (unique or {}).items()
        }
        self.latency = latency
        self.calls: List[Tuple[str, str]] = []  # (operation, table)
        self._insert_failures: Dict[str, List[_InsertFailure]] = {}
        self._select_failures: Dict[str, _SelectFailure] = {}
        self._select_counts: Dict[str, int] = {}

    # Failure injection

    def fail_inserts(
        self,
        table: str,
        reason: str,
        match: Optional[Union[Callable[[Row], bool], Dict[str, Any]]] = None,
        outcome: InsertOutcome = InsertOutcome.OTHER_ERROR
    ) -> None:
        """Make inserts into table fail when any inserted row matches."""
        if isinstance(match, dict):
            expected = dict(match)
            match = lambda row: self._matches(row, expected)  # noqa: E731
        self._insert_failures.setdefault(table, []).append(_InsertFailure(reason, outcome, match))

    def fail_selects(self, table: str, reason: str, after: int = 0) -> None:
        """Make selects on table raise StoreError after `after` successful calls."""
        self._select_failures[table] = _SelectFailure(reason, after)

    def rows(self, table: str) -> List[Row]:
        """Copy of every row currently in table."""
        return [copy.deepcopy(row) for row in self.tables.get(table, [])]

    def count_calls(self, operation: str, table: Optional[str] = None) -> int:
        return sum(1 for op, tbl in self.calls if op == operation and (table is None or tbl == table))

    # QueryClient

    def select(self, table: str, query: Optional[SelectQuery] = None) -> List[Row]:
        query = query or SelectQuery()
        self._record("select", table)

        failure = self._select_failures.get(table)
        count = self._select_counts.get(table, 0)
        self._select_counts[table] = count + 1
        if failure and count >= failure.after:
            raise StoreError(failure.reason, table=table)

        rows = [row for row in self.tables.get(table, []) if self._matches(row, query.filters)]

        if query.order_by:
            key = query.order_by
            rows.sort(key=lambda row: self._sort_key(row.get(key)), reverse=not query.ascending)

        start = query.range_start or 0
        if query.range_end is not None:
            rows = rows[start:query.range_end + 1]
        else:
            rows = rows[start:]

        return [self._project(row, query.columns) for row in rows]

    def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> InsertResult:
        batch = [copy.deepcopy(row) for row in self.as_list(rows)]
        self._record("insert", table)

        injected = self._injected_failure(table, batch)
        if injected:
            return injected

        existing = self.tables.setdefault(table, [])
        for row in batch:
            row.setdefault("id", str(uuid.uuid4()))

        # All-or-nothing, like a single INSERT statement
        pending: List[Row] = []
        for row in batch:
            violated = self._violated_constraint(table, row, existing + pending)
            if violated:
                constraint = f"{table}_{'_'.join(violated)}_key"
                return InsertResult.conflict(
                    f'duplicate key value violates unique constraint "{constraint}"',
                    error_code="23505",
                )
            pending.append(row)

        existing.extend(pending)
        return InsertResult.inserted([copy.deepcopy(row) for row in pending])

    def upsert(
        self,
        table: str,
        rows: Union[Row, Sequence[Row]],
        conflict_keys: Sequence[str]
    ) -> InsertResult:
        batch = [copy.deepcopy(row) for row in self.as_list(rows)]
        self._record("upsert", table)

        injected = self._injected_failure(table, batch)
        if injected:
            return injected

        existing = self.tables.setdefault(table, [])
        written = []
        for row in batch:
            target = None
            for current in existing:
                if all(current.get(k) == row.get(k) for k in conflict_keys):
                    target = current
                    break
            if target is None:
                row.setdefault("id", str(uuid.uuid4()))
                existing.append(row)
                target = row
            else:
                target.update(row)
            written.append(copy.deepcopy(target))

        return InsertResult.inserted(written)

    # Helpers

    def _record(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        if self.latency > 0:
            time.sleep(self.latency)

    def _injected_failure(self, table: str, batch: List[Row]) -> Optional[InsertResult]:
        for failure in self._insert_failures.get(table, []):
            if failure.match is None or any(failure.match(row) for row in batch):
                logger.debug(f"Injected {failure.outcome.value} on {self.name}.{table}: {failure.reason}")
                return InsertResult(outcome=failure.outcome, reason=failure.reason)
        return None

    def _violated_constraint(self, table: str, row: Row, existing: List[Row]) -> Optional[Tuple[str, ...]]:
        constraints = [("id",)] + self.unique.get(table, [])
        for columns in constraints:
            values = tuple(row.get(c) for c in columns)
            if any(v is None for v in values):
                continue
            for current in existing:
                if tuple(current.get(c) for c in columns) == values:
                    return columns
        return None

    @staticmethod
    def _matches(row: Row, filters: Dict[str, Any]) -> bool:
        for column, expected in filters.items():
            value = row.get(column)
            if expected is None:
                if value is not None:
                    return False
            elif isinstance(expected, (list, tuple, set)):
                if value not in expected:
                    return False
            elif value != expected:
                return False
        return True

    @staticmethod
    def _project(row: Row, columns: str) -> Row:
        if not columns or columns.strip() == "*":
            return copy.deepcopy(row)
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        return {c: copy.deepcopy(row.get(c)) for c in wanted}

    @staticmethod
    def _sort_key(value: Any) -> Tuple[bool, Any]:
        # NULLS LAST
        return (value is None, "" if value is None else value)

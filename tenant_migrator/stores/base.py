"""Base query client interface for relational stores."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union
import logging

from ..models.record import InsertResult, SelectQuery

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class QueryClient(ABC):
    """
    Thin capability over a named relational store.

    Two instances are configured per run: one bound to the source store and
    one bound to the destination store. No transactional or batched-rollback
    semantics are assumed.
    """

    def __init__(self, name: str):
        """
        Initialize the client.

        Args:
            name: Label used in log messages (e.g. "source", "destination")
        """
        self.name = name

    @abstractmethod
    def select(self, table: str, query: Optional[SelectQuery] = None) -> List[Row]:
        """
        Select rows from a table.

        Args:
            table: Table name
            query: Filters, ordering and inclusive row range

        Returns:
            Matching rows; an empty list when nothing matches

        Raises:
            StoreError: If the store could not be queried
        """
        pass

    @abstractmethod
    def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> InsertResult:
        """
        Insert one row or a batch of rows.

        Store-side rejections are reported through the returned InsertResult
        rather than raised.
        """
        pass

    @abstractmethod
    def upsert(
        self,
        table: str,
        rows: Union[Row, Sequence[Row]],
        conflict_keys: Sequence[str]
    ) -> InsertResult:
        """Insert rows, merging into existing rows that collide on conflict_keys."""
        pass

    def lookup_one(self, table: str, filters: Dict[str, Any], columns: str = "*") -> Optional[Row]:
        """
        Existence probe used for idempotency checks.

        Returns:
            The first matching row, or None
        """
        rows = self.select(table, SelectQuery(columns=columns, filters=filters, range_start=0, range_end=0))
        return rows[0] if rows else None

    def stream(
        self,
        table: str,
        page_size: int,
        query: Optional[SelectQuery] = None
    ) -> Iterator[List[Row]]:
        """
        Stream rows in pages using offset pagination.

        Stops after an empty page or a page shorter than page_size. Errors
        raised by select propagate to the consumer.

        Yields:
            Pages of rows
        """
        base = query or SelectQuery()
        offset = 0

        while True:
            page = self.select(table, base.page(offset, page_size))
            if not page:
                break

            yield page
            offset += page_size

            if len(page) < page_size:
                break

    @staticmethod
    def as_list(rows: Union[Row, Sequence[Row]]) -> List[Row]:
        if isinstance(rows, dict):
            return [rows]
        return list(rows)

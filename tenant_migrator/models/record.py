"""Record-level models shared by the store adapters and migrators."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


# Provenance columns stamped on every migrated destination row
PROVENANCE_FLAG = "migrated_from_v1"
LEGACY_ID = "v1_id"


class InsertOutcome(str, Enum):
    """Outcome of an insert against the destination store."""
    INSERTED = "inserted"
    CONFLICT = "conflict"  # Unique constraint violation
    OTHER_ERROR = "other_error"


@dataclass
class InsertResult:
    """Result of an insert or upsert call."""
    outcome: InsertOutcome
    reason: Optional[str] = None  # Human-readable, used verbatim in error lines
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == InsertOutcome.INSERTED

    @classmethod
    def inserted(cls, rows: Optional[List[Dict[str, Any]]] = None) -> "InsertResult":
        return cls(outcome=InsertOutcome.INSERTED, rows=rows or [])

    @classmethod
    def conflict(cls, reason: str, error_code: Optional[str] = None) -> "InsertResult":
        return cls(outcome=InsertOutcome.CONFLICT, reason=reason, error_code=error_code)

    @classmethod
    def failed(cls, reason: str, error_code: Optional[str] = None) -> "InsertResult":
        return cls(outcome=InsertOutcome.OTHER_ERROR, reason=reason, error_code=error_code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "outcome": self.outcome.value,
            "reason": self.reason,
            "error_code": self.error_code,
            "row_count": len(self.rows),
        }


@dataclass
class SelectQuery:
    """
    Parameters for a select against a store.

    Filters are equality matches; a value of None matches NULL and a list or
    tuple matches any of its members. ``range_start``/``range_end`` are
    inclusive row offsets.
    """
    columns: str = "*"
    filters: Dict[str, Any] = field(default_factory=dict)
    order_by: Optional[str] = None
    ascending: bool = True
    range_start: Optional[int] = None
    range_end: Optional[int] = None

    @property
    def limit(self) -> Optional[int]:
        if self.range_end is None:
            return None
        return self.range_end - (self.range_start or 0) + 1

    def page(self, offset: int, page_size: int) -> "SelectQuery":
        """Copy of this query restricted to one page."""
        return SelectQuery(
            columns=self.columns,
            filters=dict(self.filters),
            order_by=self.order_by,
            ascending=self.ascending,
            range_start=offset,
            range_end=offset + page_size - 1,
        )

"""Identifier remap table: legacy user id -> destination user id."""

import logging
from typing import Dict, Iterator, Optional

from ..models.record import LEGACY_ID, PROVENANCE_FLAG, SelectQuery
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)

USERS_TABLE = "users"


class IdentifierRemap:
    """
    Mapping used to rewrite foreign keys during transfer.

    Built from destination users carrying the provenance marker. Users that
    already existed in the destination without the marker are never
    remap-eligible, so their legacy transactions are treated as orphans.
    """

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self._mapping: Dict[str, str] = dict(mapping or {})

    @classmethod
    def build(cls, destination: QueryClient, page_size: int = 1000) -> "IdentifierRemap":
        """
        Build the table from every migrated destination user.

        Args:
            destination: Client bound to the destination store
            page_size: Rows fetched per request

        Raises:
            StoreError: If the destination could not be read
        """
        remap = cls()
        query = SelectQuery(
            columns=f"id, {LEGACY_ID}",
            filters={PROVENANCE_FLAG: True},
            order_by="id",
        )

        for page in destination.stream(USERS_TABLE, page_size, query):
            for row in page:
                legacy_id = row.get(LEGACY_ID)
                if legacy_id:
                    remap.add(str(legacy_id), str(row["id"]))

        logger.info(f"Built identifier remap with {len(remap)} entries")
        return remap

    def add(self, legacy_id: str, destination_id: str) -> None:
        self._mapping[legacy_id] = destination_id

    def get(self, legacy_id: Optional[str]) -> Optional[str]:
        if legacy_id is None:
            return None
        return self._mapping.get(str(legacy_id))

    def __contains__(self, legacy_id: object) -> bool:
        return legacy_id is not None and str(legacy_id) in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._mapping)

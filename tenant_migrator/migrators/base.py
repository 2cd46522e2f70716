"""Base migrator interface."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..models.migration import MigrationRun
from ..services.cancellation import CancellationToken
from ..stores.base import QueryClient

logger = logging.getLogger(__name__)


class BaseMigrator(ABC):
    """
    Base class for entity migrators.

    A migrator pages through one source table, transforms each row and
    writes it to the destination, accounting for every row on the run it is
    handed. It must not keep a reference to the run after ``migrate``
    returns.
    """

    entity: str = ""

    def __init__(
        self,
        source: QueryClient,
        destination: QueryClient,
        cancellation: Optional[CancellationToken] = None
    ):
        """
        Initialize the migrator.

        Args:
            source: Client bound to the legacy store
            destination: Client bound to the new store
            cancellation: Token checked at row, page and phase boundaries
        """
        self.source = source
        self.destination = destination
        self.cancellation = cancellation or CancellationToken()

    @abstractmethod
    def migrate(self, run: MigrationRun) -> MigrationRun:
        """
        Run this migrator's phase.

        Args:
            run: Run whose statistics are updated in place

        Returns:
            The same run
        """
        pass

    def check_cancelled(self) -> None:
        self.cancellation.raise_if_cancelled()

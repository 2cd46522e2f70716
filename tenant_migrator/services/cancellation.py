"""Cancellation token and run lock."""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..exceptions import MigrationCancelled, MigrationInProgressError

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation with an optional time budget.

    Migrators call ``raise_if_cancelled`` at phase and page boundaries.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._event = threading.Event()
        self._reason = "Migration cancelled"
        self.timeout_seconds = timeout_seconds
        self.start()

    def start(self) -> None:
        """Restart the time budget from now. An earlier cancel still holds."""
        self._deadline = time.monotonic() + self.timeout_seconds if self.timeout_seconds else None

    def cancel(self, reason: str = "Migration cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(f"Migration exceeded time budget of {self.timeout_seconds}s")
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise MigrationCancelled(self._reason)


class RunLock:
    """Non-blocking lock allowing at most one run at a time in this process."""

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise MigrationInProgressError()
        try:
            yield
        finally:
            self._lock.release()


# Shared by every orchestrator unless one is injected
default_run_lock = RunLock()

"""
Exceptions raised by the tenant migrator.

Exception Hierarchy:
    MigrationServiceError (base, carries an HTTP-style status code)
    +-- ConfigurationError
    +-- AuthorizationError
    +-- MigrationInProgressError
    +-- MigrationCancelled
    StoreError (transport failures talking to a data store)

Per-row and per-batch insert failures are not exceptions; they are recorded
on the run statistics and processing continues.
"""

from typing import Optional


class MigrationServiceError(Exception):
    """Top-level failure reported to the caller as ``{"error": message}``."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(MigrationServiceError):
    """Source or destination credentials are missing."""

    status_code = 500


class AuthorizationError(MigrationServiceError):
    """The caller is not allowed to trigger a migration."""

    status_code = 401


class MigrationInProgressError(MigrationServiceError):
    """Another migration run holds the run lock."""

    status_code = 409

    def __init__(self, message: str = "Migration already in progress"):
        super().__init__(message)


class MigrationCancelled(MigrationServiceError):
    """The run was cancelled or exceeded its time budget."""

    status_code = 500


class StoreError(Exception):
    """A query against a data store could not be completed."""

    def __init__(self, message: str, table: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.table = table
        self.status_code = status_code

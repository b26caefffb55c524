"""
Repository-layer exceptions for the estate ledger.
"""

from __future__ import annotations


class EstateRepositoryError(Exception):
    """Base exception for estate ledger repository failures."""


class LedgerUnavailableError(EstateRepositoryError):
    """Raised when the import_jobs table has not been provisioned."""


class LedgerPersistenceError(EstateRepositoryError):
    """Raised when an import job row cannot be written."""


class RecordWriteError(EstateRepositoryError):
    """Raised when a grouped or single estate record write fails."""


class LocationPersistenceError(EstateRepositoryError):
    """Raised when a location lookup or insert fails."""

"""
Repository layer exports.
"""

from db.repositories.aggregate_repository import AggregateRepository, StockBalance, replay_stock
from db.repositories.errors import (
    EstateRepositoryError,
    LedgerPersistenceError,
    LedgerUnavailableError,
    LocationPersistenceError,
    RecordWriteError,
)
from db.repositories.estate_record_repository import EstateRecordRepository, build_write_statement
from db.repositories.import_job_repository import ImportJobRepository, is_missing_ledger_table
from db.repositories.location_repository import LocationRepository

__all__ = [
    "AggregateRepository",
    "EstateRecordRepository",
    "ImportJobRepository",
    "LocationRepository",
    "StockBalance",
    "replay_stock",
    "build_write_statement",
    "is_missing_ledger_table",
    "EstateRepositoryError",
    "LedgerUnavailableError",
    "LedgerPersistenceError",
    "RecordWriteError",
    "LocationPersistenceError",
]

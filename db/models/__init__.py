"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.estate_records import (
    DispatchRecord,
    ExpenseTransaction,
    LaborTransaction,
    PepperRecord,
    ProcessingRecord,
    RainfallRecord,
    SalesRecord,
)
from db.models.import_job import ImportJob
from db.models.inventory import CurrentInventory, TransactionHistory
from db.models.tenant import Location, Tenant

__all__ = [
    "CurrentInventory",
    "DispatchRecord",
    "ExpenseTransaction",
    "ImportJob",
    "LaborTransaction",
    "Location",
    "PepperRecord",
    "ProcessingRecord",
    "RainfallRecord",
    "SalesRecord",
    "Tenant",
    "TransactionHistory",
]

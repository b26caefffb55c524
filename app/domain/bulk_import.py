"""
app/domain/bulk_import.py

Domain models used by the bulk import pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class Dataset(str, Enum):
    PROCESSING = "processing"
    PEPPER = "pepper"
    RAINFALL = "rainfall"
    DISPATCH = "dispatch"
    SALES = "sales"
    TRANSACTIONS = "transactions"
    INVENTORY = "inventory"
    LABOR = "labor"
    EXPENSES = "expenses"

    @property
    def module_id(self) -> str:
        """
        Functional module a caller must have enabled to import this dataset.
        """

        if self in (Dataset.LABOR, Dataset.EXPENSES):
            return "accounts"
        return self.value

    @classmethod
    def parse(cls, raw: str | None) -> Dataset | None:
        normalized = (raw or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class ImportMode(str, Enum):
    VALIDATE = "validate"
    COMMIT = "commit"


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller supplied by the access-control layer.

    ``enabled_modules`` of None means the tenant has no module restrictions.
    """

    username: str
    role: str
    tenant_id: str
    user_id: str | None = None
    enabled_modules: frozenset[str] | None = None

    def can_access(self, module_id: str) -> bool:
        if self.enabled_modules is None:
            return True
        return module_id in self.enabled_modules


@dataclass(frozen=True)
class RowError:
    """
    One row-level validation or construction failure.
    """

    row: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> RowError:
        return cls(row=int(payload.get("row", 0)), message=str(payload.get("message", "")))


@dataclass(frozen=True)
class LocationInfo:
    id: str
    name: str
    code: str

    @property
    def display_label(self) -> str:
        return self.name or self.code


@dataclass(frozen=True)
class WriteOp:
    """
    One constructed write against the estate store.

    Without ``conflict_columns`` the op is a plain insert. With them it is an
    upsert replacing ``update_columns`` on the natural key; a None value in a
    conflict column targets the partial unique index for NULL rows.
    """

    table: str
    values: dict[str, Any]
    conflict_columns: tuple[str, ...] = ()
    update_columns: tuple[str, ...] = ()

    @property
    def is_upsert(self) -> bool:
        return bool(self.conflict_columns)


@dataclass(frozen=True)
class StockKey:
    """Stock balance coordinate: item per location (None = no location)."""

    item_type: str
    location_id: str | None


@dataclass(frozen=True)
class ProcessingKey:
    """Cumulative processing totals coordinate."""

    location_id: str
    coffee_type: str


AggregateKey = Union[StockKey, ProcessingKey]


@dataclass(frozen=True)
class RowContext:
    """
    Per-request values the row builders need besides the row itself.
    """

    tenant_id: str
    username: str
    bag_weight_kg: float


@dataclass(frozen=True)
class RowPlan:
    """
    Writes derived from one valid input row.

    ``immediate`` ops are executed right away, in order, before ``batched``
    is handed to the batch writer. A plan with no batched op counts as one
    imported row once its immediate ops succeed.
    """

    batched: WriteOp | None = None
    immediate: tuple[WriteOp, ...] = ()
    touched: tuple[AggregateKey, ...] = ()


@dataclass(frozen=True)
class ValidationReport:
    row_count: int
    errors: list[RowError] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len({error.row for error in self.errors})

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class WriteSummary:
    imported: int
    skipped: int
    errors: list[RowError] = field(default_factory=list)


@dataclass(frozen=True)
class ValidateOutcome:
    dataset: Dataset
    valid: bool
    row_count: int
    skipped: int
    errors: list[RowError]
    validation_token: str | None
    expires_at: datetime | None
    ledger_available: bool = True


@dataclass(frozen=True)
class CommitOutcome:
    dataset: Dataset
    imported: int
    skipped: int
    errors: list[RowError]
    validation_token: str | None = None

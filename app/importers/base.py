"""
app/importers/base.py

Common interface for the per-dataset row builders.

Each importer parses a raw record into normalized values (pure, shared by
validate and commit) and then plans the writes for a valid row (commit
only, may resolve or create locations).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from functools import lru_cache
from typing import Any, ClassVar, Mapping, Protocol

from app.domain.bulk_import import Dataset, RowContext, RowError, RowPlan
from app.validators.field_resolver import LOCATION_ALIASES, get_field, parse_date
import db.models  # noqa: F401  registers every table on Base.metadata
from db.base import Base

ParsedRow = dict[str, Any]


class RowRejected(Exception):
    """
    Raised by a row builder when a row cannot become a domain record.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@lru_cache(maxsize=None)
def text_length_limits(tables: tuple[str, ...]) -> dict[str, int]:
    """
    Tightest declared String length per column name across ``tables``.

    ``location_raw`` is bounded by the location name column, since an
    unknown label becomes a new location.
    """

    limits: dict[str, int] = {"location_raw": Base.metadata.tables["locations"].c.name.type.length}
    for table in tables:
        for column in Base.metadata.tables[table].columns:
            length = getattr(column.type, "length", None)
            if length:
                limits[column.name] = min(length, limits.get(column.name, length))
    return limits


class LocationLookup(Protocol):
    def resolve(self, raw_label: str) -> str | None:
        ...

    def label_for(self, location_id: str, fallback: str) -> str:
        ...


class DatasetImporter(ABC):
    dataset: ClassVar[Dataset]
    tables: ClassVar[tuple[str, ...]]
    # False for datasets whose rows are written immediately instead of chunked.
    chunked: ClassVar[bool] = True
    uses_bag_weight: ClassVar[bool] = False

    @abstractmethod
    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        """
        Extract and normalize the row's fields; raise RowRejected when a
        required field is missing or malformed.
        """

    @abstractmethod
    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        """
        Build the write operations for a parsed row.
        """

    def parse_checked(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        parsed = self.parse(row, ctx)
        limits = text_length_limits(self.tables)
        for column, value in parsed.items():
            limit = limits.get(column)
            if limit is not None and isinstance(value, str) and len(value) > limit:
                raise RowRejected(f"{column} exceeds {limit} characters")
        return parsed

    def validate(self, row: Mapping[str, str], row_number: int, ctx: RowContext) -> RowError | None:
        try:
            self.parse_checked(row, ctx)
        except RowRejected as exc:
            return RowError(row=row_number, message=exc.message)
        return None

    def build(
        self,
        row: Mapping[str, str],
        row_number: int,
        ctx: RowContext,
        locations: LocationLookup,
    ) -> RowPlan | RowError:
        try:
            return self.plan(self.parse_checked(row, ctx), ctx, locations)
        except RowRejected as exc:
            return RowError(row=row_number, message=exc.message)


def to_date(canonical: str | None) -> date | None:
    return date.fromisoformat(canonical) if canonical else None


def field_date(row: Mapping[str, str], aliases: tuple[str, ...]) -> date | None:
    return to_date(parse_date(get_field(row, aliases)))


def location_label(row: Mapping[str, str]) -> str:
    return get_field(row, LOCATION_ALIASES).strip()


def require_location(locations: LocationLookup, raw_label: str) -> str:
    location_id = locations.resolve(raw_label)
    if not location_id:
        raise RowRejected("Unable to resolve location")
    return location_id


def optional_location(locations: LocationLookup, raw_label: str) -> str | None:
    return locations.resolve(raw_label) if raw_label else None


def optional_text(row: Mapping[str, str], aliases: tuple[str, ...]) -> str | None:
    return get_field(row, aliases) or None

"""
app/importers/harvest.py

Row builders for field and processing measurements: processing, pepper,
rainfall.
"""

from __future__ import annotations

from typing import Mapping

from app.domain.bulk_import import Dataset, ProcessingKey, RowContext, RowPlan, WriteOp
from app.importers.base import (
    DatasetImporter,
    LocationLookup,
    ParsedRow,
    RowRejected,
    field_date,
    location_label,
    optional_text,
    require_location,
)
from app.validators.field_resolver import (
    COFFEE_TYPE_ALIASES,
    LOT_ALIASES,
    NOTES_ALIASES,
    get_field,
    normalize_coffee_type,
    parse_number,
)

MM_PER_INCH = 25.4

_PROCESSING_MEASUREMENTS: dict[str, tuple[str, ...]] = {
    "crop_today": ("crop_today", "crop"),
    "ripe_today": ("ripe_today", "ripe"),
    "green_today": ("green_today", "green"),
    "float_today": ("float_today", "float"),
    "wet_parchment": ("wet_parchment", "wet_parch"),
    "dry_parch": ("dry_parch", "dry_parchment", "dry_parchment_today"),
    "dry_cherry": ("dry_cherry", "dry_cherry_today"),
}

PROCESSING_UPDATE_COLUMNS: tuple[str, ...] = (
    *_PROCESSING_MEASUREMENTS,
    "moisture_pct",
    "lot_id",
    "quality_grade",
    "defect_notes",
    "quality_photo_url",
    "notes",
)

PEPPER_UPDATE_COLUMNS: tuple[str, ...] = (
    "kg_picked",
    "green_pepper",
    "green_pepper_percent",
    "dry_pepper",
    "dry_pepper_percent",
    "notes",
    "recorded_by",
)


def percentage_of(part: float, whole: float) -> float:
    """``part / whole * 100``; 0 when whole is not positive."""
    return (part / whole) * 100 if whole > 0 else 0


class ProcessingImporter(DatasetImporter):
    dataset = Dataset.PROCESSING
    tables = ("processing_records",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        process_date = field_date(row, ("process_date", "date"))
        coffee_type = normalize_coffee_type(get_field(row, COFFEE_TYPE_ALIASES))
        location_raw = location_label(row)
        if not process_date or not coffee_type or not location_raw:
            raise RowRejected("Missing process_date, coffee_type, or location")

        parsed: ParsedRow = {
            "process_date": process_date,
            "coffee_type": coffee_type,
            "location_raw": location_raw,
        }
        for column, aliases in _PROCESSING_MEASUREMENTS.items():
            parsed[column] = parse_number(get_field(row, aliases)) or 0
        parsed.update(
            moisture_pct=parse_number(get_field(row, ("moisture_pct", "moisture"))),
            lot_id=optional_text(row, LOT_ALIASES),
            quality_grade=optional_text(row, ("quality_grade", "grade")),
            defect_notes=optional_text(row, ("defect_notes", "defects")),
            quality_photo_url=optional_text(row, ("quality_photo_url", "photo_url", "photo")),
            notes=get_field(row, NOTES_ALIASES),
        )
        return parsed

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        location_id = require_location(locations, parsed["location_raw"])
        values = {key: value for key, value in parsed.items() if key != "location_raw"}
        values.update(tenant_id=ctx.tenant_id, location_id=location_id)
        return RowPlan(
            batched=WriteOp(
                table="processing_records",
                values=values,
                conflict_columns=("tenant_id", "location_id", "coffee_type", "process_date"),
                update_columns=PROCESSING_UPDATE_COLUMNS,
            ),
            touched=(ProcessingKey(location_id=location_id, coffee_type=parsed["coffee_type"]),),
        )


class PepperImporter(DatasetImporter):
    dataset = Dataset.PEPPER
    tables = ("pepper_records",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        process_date = field_date(row, ("process_date", "date"))
        location_raw = location_label(row)
        if not process_date or not location_raw:
            raise RowRejected("Missing process_date or location")

        kg_picked = parse_number(get_field(row, ("kg_picked", "kgs_picked", "picked_kg"))) or 0
        green_pepper = parse_number(get_field(row, ("green_pepper", "green"))) or 0
        dry_pepper = parse_number(get_field(row, ("dry_pepper", "dry"))) or 0

        green_percent = parse_number(get_field(row, ("green_pepper_percent", "green_percent")))
        if green_percent is None:
            green_percent = percentage_of(green_pepper, kg_picked)
        dry_percent = parse_number(get_field(row, ("dry_pepper_percent", "dry_percent")))
        if dry_percent is None:
            dry_percent = percentage_of(dry_pepper, kg_picked)

        return {
            "process_date": process_date,
            "location_raw": location_raw,
            "kg_picked": kg_picked,
            "green_pepper": green_pepper,
            "green_pepper_percent": green_percent,
            "dry_pepper": dry_pepper,
            "dry_pepper_percent": dry_percent,
            "notes": get_field(row, NOTES_ALIASES),
            "recorded_by": get_field(row, ("recorded_by", "user", "user_id")) or ctx.username,
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        location_id = require_location(locations, parsed["location_raw"])
        values = {key: value for key, value in parsed.items() if key != "location_raw"}
        values.update(tenant_id=ctx.tenant_id, location_id=location_id)
        return RowPlan(
            batched=WriteOp(
                table="pepper_records",
                values=values,
                conflict_columns=("tenant_id", "location_id", "process_date"),
                update_columns=PEPPER_UPDATE_COLUMNS,
            )
        )


class RainfallImporter(DatasetImporter):
    dataset = Dataset.RAINFALL
    tables = ("rainfall_records",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        record_date = field_date(row, ("record_date", "date"))
        if not record_date:
            raise RowRejected("Missing record_date")

        inches = parse_number(get_field(row, ("inches", "inch")))
        if inches is None:
            millimeters = parse_number(get_field(row, ("mm", "millimeters")))
            inches = (millimeters or 0) / MM_PER_INCH

        return {
            "record_date": record_date,
            "inches": inches,
            "cents": int(parse_number(get_field(row, ("cents", "amount_cents", "cost_cents"))) or 0),
            "notes": get_field(row, NOTES_ALIASES),
            "user_id": get_field(row, ("user_id", "user")) or ctx.username,
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        return RowPlan(
            batched=WriteOp(table="rainfall_records", values={**parsed, "tenant_id": ctx.tenant_id})
        )

"""
app/importers/movements.py

Row builders for coffee leaving the estate: dispatch and sales.
"""

from __future__ import annotations

from typing import Mapping

from app.domain.bulk_import import Dataset, RowContext, RowPlan, WriteOp
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
    BAG_TYPE_ALIASES,
    COFFEE_TYPE_ALIASES,
    LOT_ALIASES,
    NOTES_ALIASES,
    get_field,
    normalize_bag_type,
    normalize_coffee_type,
    parse_number,
)


def _shipment_basics(row: Mapping[str, str], date_column: str) -> ParsedRow:
    shipped_on = field_date(row, (date_column, "date"))
    coffee_type = normalize_coffee_type(get_field(row, COFFEE_TYPE_ALIASES))
    bag_type = normalize_bag_type(get_field(row, BAG_TYPE_ALIASES))
    location_raw = location_label(row)
    if not shipped_on or not coffee_type or not bag_type or not location_raw:
        raise RowRejected(f"Missing {date_column}, coffee_type, bag_type, or location")
    return {
        date_column: shipped_on,
        "coffee_type": coffee_type,
        "bag_type": bag_type,
        "location_raw": location_raw,
    }


def _resolve_estate(parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> dict:
    location_raw = parsed["location_raw"]
    location_id = require_location(locations, location_raw)
    values = {key: value for key, value in parsed.items() if key != "location_raw"}
    values.update(
        tenant_id=ctx.tenant_id,
        location_id=location_id,
        estate=locations.label_for(location_id, location_raw),
    )
    return values


class DispatchImporter(DatasetImporter):
    dataset = Dataset.DISPATCH
    tables = ("dispatch_records",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        parsed = _shipment_basics(row, "dispatch_date")

        # Zero bags is a valid dispatch; only a missing count is rejected.
        bags_dispatched = parse_number(get_field(row, ("bags_dispatched", "bags", "bags_sent")))
        if bags_dispatched is None:
            raise RowRejected("Missing bags_dispatched")

        parsed.update(
            bags_dispatched=bags_dispatched,
            kgs_received=parse_number(get_field(row, ("kgs_received", "kgs", "weight_kgs"))),
            lot_id=optional_text(row, LOT_ALIASES),
            notes=get_field(row, NOTES_ALIASES),
            created_by=get_field(row, ("created_by", "user", "user_id")) or ctx.username or "unknown",
        )
        return parsed

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        return RowPlan(
            batched=WriteOp(table="dispatch_records", values=_resolve_estate(parsed, ctx, locations))
        )


class SalesImporter(DatasetImporter):
    dataset = Dataset.SALES
    tables = ("sales_records",)
    uses_bag_weight = True

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        parsed = _shipment_basics(row, "sale_date")
        bag_weight_kg = ctx.bag_weight_kg

        bags_sold = parse_number(get_field(row, ("bags_sold", "bags", "bags_sent")))
        if bags_sold is None:
            kgs_input = parse_number(get_field(row, ("kgs", "kgs_sold", "weight_kgs")))
            bags_sold = kgs_input / bag_weight_kg if kgs_input else None
        if bags_sold is None:
            raise RowRejected("Missing bags_sold or kgs")

        price_per_kg_input = parse_number(get_field(row, ("price_per_kg", "price_kg")))
        price_per_bag = parse_number(get_field(row, ("price_per_bag", "price_bag")))
        if price_per_bag is None:
            price_per_bag = price_per_kg_input * bag_weight_kg if price_per_kg_input else None
        if price_per_bag is None:
            raise RowRejected("Missing price_per_bag or price_per_kg")

        kgs_sold = round(bags_sold * bag_weight_kg, 2)
        revenue = parse_number(get_field(row, ("revenue", "total_revenue")))
        if revenue is None:
            revenue = round(bags_sold * price_per_bag, 2)
        price_per_kg = price_per_kg_input if price_per_kg_input is not None else price_per_bag / bag_weight_kg

        parsed.update(
            bags_sold=bags_sold,
            bags_sent=bags_sold,
            kgs=kgs_sold,
            kgs_received=kgs_sold,
            price_per_bag=price_per_bag,
            price_per_kg=price_per_kg,
            revenue=revenue,
            total_revenue=revenue,
            buyer_name=optional_text(row, ("buyer_name", "buyer")),
            batch_no=optional_text(row, ("batch_no", "batch")),
            lot_id=optional_text(row, LOT_ALIASES),
            bank_account=optional_text(row, ("bank_account", "bank")),
            notes=get_field(row, NOTES_ALIASES),
        )
        return parsed

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        return RowPlan(
            batched=WriteOp(table="sales_records", values=_resolve_estate(parsed, ctx, locations))
        )

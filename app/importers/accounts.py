"""
app/importers/accounts.py

Row builders for the accounts module: labor deployments and expenses.
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
    optional_location,
)
from app.validators.field_resolver import ACTIVITY_CODE_ALIASES, NOTES_ALIASES, get_field, parse_number


def _with_location(parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> dict:
    values = {key: value for key, value in parsed.items() if key != "location_raw"}
    values.update(
        tenant_id=ctx.tenant_id,
        location_id=optional_location(locations, parsed["location_raw"]),
    )
    return values


class LaborImporter(DatasetImporter):
    dataset = Dataset.LABOR
    tables = ("labor_transactions",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        deployment_date = field_date(row, ("deployment_date", "date"))
        code = get_field(row, ACTIVITY_CODE_ALIASES)
        if not deployment_date or not code:
            raise RowRejected("Missing deployment_date or code")

        hf_laborers = parse_number(get_field(row, ("hf_laborers", "estate_laborers"))) or 0
        hf_cost = parse_number(get_field(row, ("hf_cost_per_laborer", "estate_cost_per_laborer"))) or 0
        outside_laborers = parse_number(get_field(row, ("outside_laborers",))) or 0
        outside_cost = parse_number(get_field(row, ("outside_cost_per_laborer",))) or 0
        total_cost = parse_number(
            get_field(row, ("total_cost", "total_amount")),
            fallback=hf_laborers * hf_cost + outside_laborers * outside_cost,
        )

        return {
            "deployment_date": deployment_date,
            "code": code,
            "hf_laborers": hf_laborers,
            "hf_cost_per_laborer": hf_cost,
            "outside_laborers": outside_laborers,
            "outside_cost_per_laborer": outside_cost,
            "total_cost": total_cost,
            "notes": get_field(row, NOTES_ALIASES),
            "location_raw": location_label(row),
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        return RowPlan(
            batched=WriteOp(table="labor_transactions", values=_with_location(parsed, ctx, locations))
        )


class ExpensesImporter(DatasetImporter):
    dataset = Dataset.EXPENSES
    tables = ("expense_transactions",)

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        entry_date = field_date(row, ("entry_date", "date"))
        code = get_field(row, ACTIVITY_CODE_ALIASES)
        if not entry_date or not code:
            raise RowRejected("Missing entry_date or code")

        return {
            "entry_date": entry_date,
            "code": code,
            "total_amount": parse_number(get_field(row, ("total_amount", "amount", "cost"))) or 0,
            "notes": get_field(row, NOTES_ALIASES),
            "location_raw": location_label(row),
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        return RowPlan(
            batched=WriteOp(table="expense_transactions", values=_with_location(parsed, ctx, locations))
        )

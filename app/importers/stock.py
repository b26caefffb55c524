"""
app/importers/stock.py

Row builders for the stock ledger: transaction history and opening
inventory balances. Both touch the stock balance of (item, location), which
is recalculated once after the import.
"""

from __future__ import annotations

from typing import Mapping

from app.domain.bulk_import import Dataset, RowContext, RowPlan, StockKey, WriteOp
from app.importers.base import (
    DatasetImporter,
    LocationLookup,
    ParsedRow,
    RowRejected,
    field_date,
    location_label,
    optional_location,
)
from app.validators.field_resolver import (
    ITEM_TYPE_ALIASES,
    NOTES_ALIASES,
    PRICE_ALIASES,
    QUANTITY_ALIASES,
    get_field,
    normalize_transaction_type,
    parse_number,
)

OPENING_BALANCE_NOTE = "Imported opening balance"
DEFAULT_STOCK_UNIT = "kg"


def stock_unit_upsert(tenant_id: str, item_type: str, location_id: str | None, unit: str) -> WriteOp:
    """
    Ensure a stock balance row exists for (item, location) and set its unit.

    Quantities stay at zero here; the recalculation fills them in.
    """

    return WriteOp(
        table="current_inventory",
        values={
            "item_type": item_type,
            "quantity": 0,
            "unit": unit,
            "avg_price": 0,
            "total_cost": 0,
            "tenant_id": tenant_id,
            "location_id": location_id,
        },
        conflict_columns=("item_type", "tenant_id", "location_id"),
        update_columns=("unit",),
    )


class TransactionsImporter(DatasetImporter):
    dataset = Dataset.TRANSACTIONS
    tables = ("transaction_history", "current_inventory")

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        transaction_date = field_date(row, ("transaction_date", "date"))
        item_type = get_field(row, ITEM_TYPE_ALIASES)
        quantity = parse_number(get_field(row, QUANTITY_ALIASES))
        if not transaction_date or not item_type or quantity is None:
            raise RowRejected("Missing transaction_date, item_type, or quantity")

        price = parse_number(get_field(row, PRICE_ALIASES)) or 0
        return {
            "transaction_date": transaction_date,
            "item_type": item_type,
            "transaction_type": normalize_transaction_type(get_field(row, ("transaction_type", "type"))),
            "quantity": quantity,
            "price": price,
            "total_cost": round(quantity * price, 2),
            "unit": get_field(row, ("unit",)),
            "notes": get_field(row, NOTES_ALIASES),
            "user_id": get_field(row, ("user_id", "user")) or ctx.username or "system",
            "location_raw": location_label(row),
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        location_id = optional_location(locations, parsed["location_raw"])
        item_type = parsed["item_type"]

        immediate: tuple[WriteOp, ...] = ()
        if parsed["unit"]:
            immediate = (stock_unit_upsert(ctx.tenant_id, item_type, location_id, parsed["unit"]),)

        values = {
            key: value for key, value in parsed.items() if key not in ("location_raw", "unit")
        }
        values.update(tenant_id=ctx.tenant_id, location_id=location_id)
        return RowPlan(
            batched=WriteOp(table="transaction_history", values=values),
            immediate=immediate,
            touched=(StockKey(item_type=item_type, location_id=location_id),),
        )


class InventoryImporter(DatasetImporter):
    dataset = Dataset.INVENTORY
    tables = ("current_inventory", "transaction_history")
    chunked = False

    def parse(self, row: Mapping[str, str], ctx: RowContext) -> ParsedRow:
        item_type = get_field(row, ITEM_TYPE_ALIASES)
        if not item_type:
            raise RowRejected("Missing item_type")

        quantity = parse_number(get_field(row, QUANTITY_ALIASES)) or 0
        price = parse_number(get_field(row, PRICE_ALIASES)) or 0
        return {
            "item_type": item_type,
            "unit": get_field(row, ("unit",)) or DEFAULT_STOCK_UNIT,
            "quantity": quantity,
            "price": price,
            "total_cost": round(quantity * price, 2),
            "notes": get_field(row, NOTES_ALIASES),
            "location_raw": location_label(row),
        }

    def plan(self, parsed: ParsedRow, ctx: RowContext, locations: LocationLookup) -> RowPlan:
        location_id = optional_location(locations, parsed["location_raw"])
        item_type = parsed["item_type"]

        writes = [stock_unit_upsert(ctx.tenant_id, item_type, location_id, parsed["unit"])]
        if parsed["quantity"] > 0:
            # transaction_date is left to the column default (today).
            writes.append(
                WriteOp(
                    table="transaction_history",
                    values={
                        "item_type": item_type,
                        "quantity": parsed["quantity"],
                        "transaction_type": "restock",
                        "notes": parsed["notes"] or OPENING_BALANCE_NOTE,
                        "user_id": ctx.username or "system",
                        "price": parsed["price"],
                        "total_cost": parsed["total_cost"],
                        "tenant_id": ctx.tenant_id,
                        "location_id": location_id,
                    },
                )
            )
        return RowPlan(
            immediate=tuple(writes),
            touched=(StockKey(item_type=item_type, location_id=location_id),),
        )

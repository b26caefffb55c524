"""
tests/test_estate_repositories.py

SQL built for import writes, and the stock replay used by inventory
recalculation. Statements are compiled against the PostgreSQL dialect; no
database connection is opened.
"""

from __future__ import annotations

import pytest
from sqlalchemy.dialects import postgresql

from app.domain.bulk_import import WriteOp
from app.importers.stock import stock_unit_upsert
from db.repositories.aggregate_repository import replay_stock
from db.repositories.estate_record_repository import build_write_statement
from db.repositories.import_job_repository import is_missing_ledger_table


def _sql(op: WriteOp) -> str:
    return str(build_write_statement(op).compile(dialect=postgresql.dialect()))


class TestBuildWriteStatement:
    def test_plain_insert_has_no_conflict_clause(self) -> None:
        sql = _sql(WriteOp(table="rainfall_records", values={"tenant_id": "t", "inches": 1.0}))

        assert sql.startswith("INSERT INTO rainfall_records")
        assert "ON CONFLICT" not in sql

    def test_upsert_targets_natural_key_and_refreshes_updated_at(self) -> None:
        sql = _sql(
            WriteOp(
                table="pepper_records",
                values={"tenant_id": "t", "location_id": "l", "process_date": "2024-01-01", "kg_picked": 1},
                conflict_columns=("tenant_id", "location_id", "process_date"),
                update_columns=("kg_picked",),
            )
        )

        assert "ON CONFLICT (tenant_id, location_id, process_date) DO UPDATE" in sql
        assert "kg_picked = excluded.kg_picked" in sql
        assert "updated_at = now()" in sql

    def test_null_location_uses_partial_index(self) -> None:
        sql = _sql(stock_unit_upsert("t", "Urea", None, "bags"))

        assert "ON CONFLICT (item_type, tenant_id) WHERE location_id IS NULL" in sql
        assert "unit = excluded.unit" in sql
        assert "updated_at" not in sql

    def test_located_stock_uses_full_unique_key(self) -> None:
        sql = _sql(stock_unit_upsert("t", "Urea", "loc-1", "bags"))

        assert "ON CONFLICT (item_type, tenant_id, location_id) DO UPDATE" in sql


class TestReplayStock:
    def test_restock_then_deplete_at_average_cost(self) -> None:
        balance = replay_stock(
            [
                ("restock", 10.0, 100.0),
                ("restock", 10.0, 300.0),
                ("deplete", 5.0, 0.0),
            ]
        )

        assert balance.quantity == 15.0
        assert balance.total_cost == pytest.approx(300.0)
        assert balance.avg_price == pytest.approx(20.0)

    def test_quantities_never_go_negative(self) -> None:
        balance = replay_stock([("restock", 2.0, 10.0), ("deplete", 5.0, 0.0)])

        assert balance.quantity == 0.0
        assert balance.total_cost == 0.0
        assert balance.avg_price == 0.0

    def test_no_history_is_empty_balance(self) -> None:
        balance = replay_stock([])
        assert (balance.quantity, balance.total_cost, balance.avg_price) == (0.0, 0.0, 0.0)


def test_missing_ledger_table_detection() -> None:
    assert is_missing_ledger_table(Exception('relation "import_jobs" does not exist'))
    assert not is_missing_ledger_table(Exception('relation "sales_records" does not exist'))

"""create tenant, location and estate record tables

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


def _qty(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable)


def _pct(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Numeric(7, 2), nullable=nullable)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _tenant_id() -> sa.Column:
    return sa.Column("tenant_id", sa.String(length=64), nullable=False)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("bag_weight_kg", sa.Numeric(10, 2), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "locations",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        _tenant_id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_locations_tenant_code"),
    )
    op.create_index("ix_locations_tenant_id", "locations", ["tenant_id"], unique=False)

    op.create_table(
        "processing_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("coffee_type", sa.String(length=64), nullable=False),
        sa.Column("process_date", sa.Date(), nullable=False),
        _qty("crop_today"),
        _qty("ripe_today"),
        _qty("green_today"),
        _qty("float_today"),
        _qty("wet_parchment"),
        _qty("dry_parch"),
        _qty("dry_cherry"),
        _pct("moisture_pct"),
        sa.Column("lot_id", sa.String(length=120), nullable=True),
        sa.Column("quality_grade", sa.String(length=64), nullable=True),
        sa.Column("defect_notes", sa.Text(), nullable=True),
        sa.Column("quality_photo_url", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False),
        _qty("crop_todate", nullable=True),
        _qty("ripe_todate", nullable=True),
        _qty("green_todate", nullable=True),
        _qty("float_todate", nullable=True),
        _qty("dry_p_todate", nullable=True),
        _qty("dry_cherry_todate", nullable=True),
        _qty("dry_p_bags", nullable=True),
        _qty("dry_cherry_bags", nullable=True),
        _qty("dry_p_bags_todate", nullable=True),
        _qty("dry_cherry_bags_todate", nullable=True),
        _pct("ripe_percent"),
        _pct("green_percent"),
        _pct("float_percent"),
        _pct("fr_wp_percent"),
        _pct("wp_dp_percent"),
        _pct("dry_cherry_percent"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id",
            "location_id",
            "coffee_type",
            "process_date",
            name="uq_processing_records_natural_key",
        ),
    )

    op.create_table(
        "pepper_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("process_date", sa.Date(), nullable=False),
        _qty("kg_picked"),
        _qty("green_pepper"),
        _pct("green_pepper_percent", nullable=False),
        _qty("dry_pepper"),
        _pct("dry_pepper_percent", nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("recorded_by", sa.String(length=120), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id",
            "location_id",
            "process_date",
            name="uq_pepper_records_natural_key",
        ),
    )

    op.create_table(
        "rainfall_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("record_date", sa.Date(), nullable=False),
        sa.Column("inches", sa.Numeric(10, 4), nullable=False),
        sa.Column("cents", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(length=120), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rainfall_records_tenant_date", "rainfall_records", ["tenant_id", "record_date"], unique=False
    )

    op.create_table(
        "dispatch_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("dispatch_date", sa.Date(), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("estate", sa.String(length=255), nullable=False),
        sa.Column("lot_id", sa.String(length=120), nullable=True),
        sa.Column("coffee_type", sa.String(length=64), nullable=False),
        sa.Column("bag_type", sa.String(length=64), nullable=False),
        _qty("bags_dispatched"),
        _qty("kgs_received", nullable=True),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_dispatch_records_tenant_date", "dispatch_records", ["tenant_id", "dispatch_date"], unique=False
    )

    op.create_table(
        "sales_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("batch_no", sa.String(length=120), nullable=True),
        sa.Column("lot_id", sa.String(length=120), nullable=True),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("estate", sa.String(length=255), nullable=False),
        sa.Column("coffee_type", sa.String(length=64), nullable=False),
        sa.Column("bag_type", sa.String(length=64), nullable=False),
        sa.Column("buyer_name", sa.String(length=255), nullable=True),
        _qty("bags_sent"),
        _qty("kgs"),
        _qty("kgs_received"),
        _qty("bags_sold"),
        _qty("price_per_bag"),
        sa.Column("price_per_kg", sa.Numeric(14, 4), nullable=False),
        _qty("revenue"),
        _qty("total_revenue"),
        sa.Column("bank_account", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_records_tenant_date", "sales_records", ["tenant_id", "sale_date"], unique=False)

    op.create_table(
        "labor_transactions",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("deployment_date", sa.Date(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        _qty("hf_laborers"),
        _qty("hf_cost_per_laborer"),
        _qty("outside_laborers"),
        _qty("outside_cost_per_laborer"),
        _qty("total_cost"),
        sa.Column("notes", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "expense_transactions",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        _qty("total_amount"),
        sa.Column("notes", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "current_inventory",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("item_type", sa.String(length=255), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        _qty("quantity"),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.Column("avg_price", sa.Numeric(14, 4), nullable=False),
        _qty("total_cost"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "item_type",
            "tenant_id",
            "location_id",
            name="uq_current_inventory_item_tenant_location",
        ),
    )
    op.create_index(
        "uq_current_inventory_item_tenant_no_location",
        "current_inventory",
        ["item_type", "tenant_id"],
        unique=True,
        postgresql_where=sa.text("location_id IS NULL"),
    )

    op.create_table(
        "transaction_history",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column("item_type", sa.String(length=255), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        _qty("quantity"),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("price", sa.Numeric(14, 4), nullable=False),
        _qty("total_cost"),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(length=120), nullable=False),
        sa.Column("transaction_date", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_transaction_history_tenant_item_location",
        "transaction_history",
        ["tenant_id", "item_type", "location_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_transaction_history_tenant_item_location", table_name="transaction_history")
    op.drop_table("transaction_history")
    op.drop_index("uq_current_inventory_item_tenant_no_location", table_name="current_inventory")
    op.drop_table("current_inventory")
    op.drop_table("expense_transactions")
    op.drop_table("labor_transactions")
    op.drop_index("ix_sales_records_tenant_date", table_name="sales_records")
    op.drop_table("sales_records")
    op.drop_index("ix_dispatch_records_tenant_date", table_name="dispatch_records")
    op.drop_table("dispatch_records")
    op.drop_index("ix_rainfall_records_tenant_date", table_name="rainfall_records")
    op.drop_table("rainfall_records")
    op.drop_table("pepper_records")
    op.drop_table("processing_records")
    op.drop_index("ix_locations_tenant_id", table_name="locations")
    op.drop_table("locations")
    op.drop_table("tenants")

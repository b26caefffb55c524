"""
db/models/estate_records.py

Operational estate records written by the bulk import pipeline.

processing_records and pepper_records carry natural-key unique constraints
and are upserted; every other table here is append-only.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, TenantScopedMixin, TimestampMixin

_QTY = Numeric(14, 2)
_PCT = Numeric(7, 2)


class ProcessingRecord(Base, TenantScopedMixin, TimestampMixin):
    __tablename__ = "processing_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    location_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    coffee_type: Mapped[str] = mapped_column(String(64), nullable=False)
    process_date: Mapped[date] = mapped_column(Date, nullable=False)

    crop_today: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    ripe_today: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    green_today: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    float_today: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    wet_parchment: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    dry_parch: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    dry_cherry: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    moisture_pct: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    lot_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    quality_grade: Mapped[str | None] = mapped_column(String(64), nullable=True)
    defect_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    quality_photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Derived by the processing totals recompute; never written by imports.
    crop_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    ripe_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    green_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    float_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_p_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_cherry_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_p_bags: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_cherry_bags: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_p_bags_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    dry_cherry_bags_todate: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    ripe_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    green_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    float_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    fr_wp_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    wp_dp_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)
    dry_cherry_percent: Mapped[Decimal | None] = mapped_column(_PCT, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "location_id",
            "coffee_type",
            "process_date",
            name="uq_processing_records_natural_key",
        ),
    )


class PepperRecord(Base, TenantScopedMixin, TimestampMixin):
    __tablename__ = "pepper_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    location_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    process_date: Mapped[date] = mapped_column(Date, nullable=False)
    kg_picked: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    green_pepper: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    green_pepper_percent: Mapped[Decimal] = mapped_column(_PCT, nullable=False, default=0)
    dry_pepper: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    dry_pepper_percent: Mapped[Decimal] = mapped_column(_PCT, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recorded_by: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "location_id",
            "process_date",
            name="uq_pepper_records_natural_key",
        ),
    )


class RainfallRecord(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "rainfall_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    record_date: Mapped[date] = mapped_column(Date, nullable=False)
    inches: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    __table_args__ = (Index("ix_rainfall_records_tenant_date", "tenant_id", "record_date"),)


class DispatchRecord(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "dispatch_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    dispatch_date: Mapped[date] = mapped_column(Date, nullable=False)
    location_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    estate: Mapped[str] = mapped_column(String(255), nullable=False)
    lot_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    coffee_type: Mapped[str] = mapped_column(String(64), nullable=False)
    bag_type: Mapped[str] = mapped_column(String(64), nullable=False)
    bags_dispatched: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    kgs_received: Mapped[Decimal | None] = mapped_column(_QTY, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[str] = mapped_column(String(120), nullable=False)

    __table_args__ = (Index("ix_dispatch_records_tenant_date", "tenant_id", "dispatch_date"),)


class SalesRecord(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "sales_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    batch_no: Mapped[str | None] = mapped_column(String(120), nullable=True)
    lot_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    location_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    estate: Mapped[str] = mapped_column(String(255), nullable=False)
    coffee_type: Mapped[str] = mapped_column(String(64), nullable=False)
    bag_type: Mapped[str] = mapped_column(String(64), nullable=False)
    buyer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bags_sent: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    kgs: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    kgs_received: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    bags_sold: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    price_per_bag: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    price_per_kg: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    revenue: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(_QTY, nullable=False)
    bank_account: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (Index("ix_sales_records_tenant_date", "tenant_id", "sale_date"),)


class LaborTransaction(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "labor_transactions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    deployment_date: Mapped[date] = mapped_column(Date, nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    hf_laborers: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    hf_cost_per_laborer: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    outside_laborers: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    outside_cost_per_laborer: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    total_cost: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ExpenseTransaction(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "expense_transactions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(_QTY, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

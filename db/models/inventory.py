"""
db/models/inventory.py

Stock balance and transaction history tables.

current_inventory is the derived stock balance per (item, location); it is
rebuilt from transaction_history by the inventory recalculation. Rows with
no location are kept unique by a partial index.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Index, Numeric, String, Text, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, TenantScopedMixin


class CurrentInventory(Base, TenantScopedMixin):
    __tablename__ = "current_inventory"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    item_type: Mapped[str] = mapped_column(String(255), nullable=False)
    location_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="kg")
    avg_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=0)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "item_type",
            "tenant_id",
            "location_id",
            name="uq_current_inventory_item_tenant_location",
        ),
        Index(
            "uq_current_inventory_item_tenant_no_location",
            "item_type",
            "tenant_id",
            unique=True,
            postgresql_where=text("location_id IS NULL"),
        ),
    )


class TransactionHistory(Base, TenantScopedMixin, CreatedAtMixin):
    __tablename__ = "transaction_history"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    item_type: Mapped[str] = mapped_column(String(255), nullable=False)
    location_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    transaction_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="restock or deplete",
    )
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=0)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(120), nullable=False, default="system")
    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        server_default=func.current_date(),
    )

    __table_args__ = (
        Index(
            "ix_transaction_history_tenant_item_location",
            "tenant_id",
            "item_type",
            "location_id",
        ),
    )

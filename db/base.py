"""
db/base.py

Declarative base and shared mixins for the estate ledger models.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    All estate ledger and import models inherit from this class.
    """

    type_annotation_map: dict[type, Any] = {}


class TenantScopedMixin:
    """
    Mixin for rows that belong to exactly one tenant.
    """

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)


class CreatedAtMixin:
    """
    Mixin for append-only rows that only record their insertion time.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class TimestampMixin(CreatedAtMixin):
    """
    Mixin that adds created_at and updated_at to a mutable model.
    updated_at is refreshed on every ORM UPDATE via onupdate; upserts
    issued by the import pipeline set it explicitly.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

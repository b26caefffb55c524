"""
db/models/import_job.py

Import job ledger: one row per validate attempt, mutated at commit time.

Rows are never deleted by the import pipeline itself; only the retention
cleanup removes them once they age out.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TenantScopedMixin, TimestampMixin

IMPORT_JOBS_TABLE = "import_jobs"


class ImportJob(Base, TenantScopedMixin, TimestampMixin):
    __tablename__ = IMPORT_JOBS_TABLE

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Doubles as the validation token",
    )
    dataset: Mapped[str] = mapped_column(String(32), nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False, comment="validate or commit")
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    requested_by: Mapped[str] = mapped_column(String(120), nullable=False)
    requested_by_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    content_fingerprint: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="sha256 of the submitted CSV text",
    )
    raw_content: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Submitted CSV text; redacted by retention cleanup",
    )
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    imported_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Row-level validation errors: [{row, message}]",
    )
    job_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        comment="Failure reason, redaction markers and other non-row details",
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_import_jobs_tenant_dataset", "tenant_id", "dataset"),
        Index("ix_import_jobs_status", "status"),
        Index("ix_import_jobs_created_at", "created_at"),
        Index("ix_import_jobs_content_fingerprint", "tenant_id", "content_fingerprint"),
    )

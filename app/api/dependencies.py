"""
app/api/dependencies.py

Shared FastAPI dependencies for the import endpoints.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.domain.bulk_import import Principal
from app.services.bulk_import_service import BulkImportService
from db.repositories.aggregate_repository import AggregateRepository
from db.repositories.estate_record_repository import EstateRecordRepository
from db.repositories.import_job_repository import ImportJobRepository
from db.repositories.location_repository import LocationRepository
from db.session import get_db


def _parse_modules(raw: str | None) -> frozenset[str] | None:
    if raw is None or not raw.strip():
        return None
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


def get_principal(
    x_tenant_id: str | None = Header(default=None),
    x_username: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
    x_enabled_modules: str | None = Header(default=None),
) -> Principal:
    """
    Build the caller from gateway-supplied identity headers.

    A missing X-Enabled-Modules header means no module restrictions.
    """

    tenant_id = (x_tenant_id or "").strip()
    username = (x_username or "").strip()
    if not tenant_id or not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authenticated tenant and username are required.",
        )

    return Principal(
        username=username,
        role=(x_role or "").strip().lower(),
        tenant_id=tenant_id,
        user_id=(x_user_id or "").strip() or None,
        enabled_modules=_parse_modules(x_enabled_modules),
    )


def get_bulk_import_service(db: Session = Depends(get_db)) -> BulkImportService:
    aggregates = AggregateRepository(db)
    return BulkImportService(
        ledger=ImportJobRepository(db),
        locations=LocationRepository(db),
        records=EstateRecordRepository(db),
        inventory=aggregates,
        processing=aggregates,
    )

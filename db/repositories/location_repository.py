"""
Repository for tenant locations referenced by import rows.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.bulk_import import LocationInfo
from db.models.tenant import Location
from db.repositories.errors import LocationPersistenceError

_TENANT_CODE_CONSTRAINT = "uq_locations_tenant_code"


def _to_info(row: Location | None) -> LocationInfo | None:
    if row is None:
        return None
    return LocationInfo(id=str(row.id), name=row.name or "", code=row.code or "")


class LocationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_location(self, tenant_id: str, location_id: str) -> LocationInfo | None:
        stmt = (
            select(Location)
            .where(Location.id == location_id)
            .where(Location.tenant_id == tenant_id)
            .limit(1)
        )
        return _to_info(self._first(stmt))

    def match_location(self, tenant_id: str, label: str, token: str) -> LocationInfo | None:
        name = func.lower(Location.name)
        code = func.lower(Location.code)
        stmt = (
            select(Location)
            .where(Location.tenant_id == tenant_id)
            .where(or_(name == label, code == label, code == token, name == token))
            .limit(1)
        )
        return _to_info(self._first(stmt))

    def find_location_by_code(self, tenant_id: str, code: str) -> LocationInfo | None:
        stmt = (
            select(Location)
            .where(Location.tenant_id == tenant_id)
            .where(func.lower(Location.code) == code.lower())
            .limit(1)
        )
        return _to_info(self._first(stmt))

    def create_location(self, tenant_id: str, name: str, code: str) -> LocationInfo | None:
        stmt = (
            insert(Location)
            .values(id=str(uuid.uuid4()), tenant_id=tenant_id, name=name, code=code)
            .on_conflict_do_nothing(constraint=_TENANT_CODE_CONSTRAINT)
            .returning(Location.id, Location.name, Location.code)
        )
        try:
            row = self._session.execute(stmt).first()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise LocationPersistenceError(f"Failed to create location code={code!r}.") from exc

        if row is None:
            return None
        return LocationInfo(id=str(row.id), name=row.name or "", code=row.code or "")

    def _first(self, stmt) -> Location | None:
        try:
            return self._session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise LocationPersistenceError("Failed to look up location.") from exc

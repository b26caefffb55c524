"""
Repository that executes constructed import writes against estate tables.

A WriteOp names its table; statements are built from Base.metadata so one
code path covers every dataset. Upserts use PostgreSQL ON CONFLICT.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import db.models  # noqa: F401 registers estate tables on Base.metadata
from app.domain.bulk_import import WriteOp
from db.base import Base
from db.models.tenant import Tenant
from db.repositories.errors import EstateRepositoryError, RecordWriteError

DEFAULT_BAG_WEIGHT_KG = 50.0


def build_write_statement(op: WriteOp) -> Insert:
    """
    INSERT (or INSERT ... ON CONFLICT DO UPDATE) for one write op.

    Conflict columns whose value is None are matched through the partial
    unique index ``WHERE <column> IS NULL`` instead of as index elements.
    """

    table = Base.metadata.tables[op.table]
    stmt = insert(table).values(**op.values)
    if not op.is_upsert:
        return stmt

    index_elements = [name for name in op.conflict_columns if op.values.get(name) is not None]
    null_columns = [name for name in op.conflict_columns if op.values.get(name) is None]
    index_where = and_(*(table.c[name].is_(None) for name in null_columns)) if null_columns else None

    set_ = {name: stmt.excluded[name] for name in op.update_columns}
    if "updated_at" in table.c:
        set_["updated_at"] = func.now()

    return stmt.on_conflict_do_update(
        index_elements=index_elements,
        index_where=index_where,
        set_=set_,
    )


class EstateRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def execute_group(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return
        try:
            for op in ops:
                self._session.execute(build_write_statement(op))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordWriteError(
                f"Grouped write of {len(ops)} row(s) into {ops[0].table} failed: {exc}"
            ) from exc

    def execute(self, op: WriteOp) -> None:
        try:
            self._session.execute(build_write_statement(op))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordWriteError(f"Write into {op.table} failed: {exc}") from exc

    def resolve_bag_weight_kg(self, tenant_id: str, default: float = DEFAULT_BAG_WEIGHT_KG) -> float:
        """
        Tenant bag weight in kg; ``default`` when unset or not positive.
        """

        stmt = select(Tenant.bag_weight_kg).where(Tenant.id == tenant_id).limit(1)
        try:
            value = self._session.scalar(stmt)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise EstateRepositoryError("Failed to read tenant bag weight.") from exc

        weight = float(value) if value is not None else 0.0
        return weight if weight > 0 else default

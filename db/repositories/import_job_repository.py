"""
Repository for the import job ledger.

Every status change goes through the pure state machine in
app.domain.job_state, so an illegal transition raises before anything is
written. Methods that mutate a job commit before returning.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone

from psycopg import errors as pg_errors
from sqlalchemy import cast, delete, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.bulk_import import ImportMode, RowError
from app.domain.job_state import TERMINAL_STATUSES, JobEvent, JobStatus, transition
from db.models.import_job import IMPORT_JOBS_TABLE, ImportJob
from db.repositories.errors import LedgerPersistenceError, LedgerUnavailableError


def is_missing_ledger_table(exc: BaseException) -> bool:
    """
    True when ``exc`` reports that the import_jobs relation does not exist.
    """

    if isinstance(getattr(exc, "orig", None), pg_errors.UndefinedTable):
        return True
    return f'relation "{IMPORT_JOBS_TABLE}" does not exist' in str(exc)


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_validation_job(
        self,
        *,
        tenant_id: str,
        dataset: str,
        requested_by: str,
        requested_by_user_id: str | None,
        content_fingerprint: str,
        raw_content: str,
        row_count: int,
    ) -> ImportJob:
        job = ImportJob(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            dataset=dataset,
            mode=ImportMode.VALIDATE.value,
            status=JobStatus.VALIDATING.value,
            requested_by=requested_by,
            requested_by_user_id=requested_by_user_id,
            content_fingerprint=content_fingerprint,
            raw_content=raw_content,
            row_count=row_count,
            imported_count=0,
            skipped_count=0,
            error_count=0,
            errors=[],
            job_metadata={},
            expires_at=None,
            committed_at=None,
        )
        with self._guard("create"):
            self._session.add(job)
            self._session.flush()
        return job

    def record_validation(
        self,
        job: ImportJob,
        *,
        errors: Sequence[RowError],
        skipped: int,
        expires_at: datetime,
    ) -> ImportJob:
        event = JobEvent.VALIDATION_FAILED if errors else JobEvent.VALIDATION_PASSED
        job.status = transition(job.status, event).value
        job.skipped_count = skipped
        job.error_count = skipped
        job.errors = [error.to_dict() for error in errors]
        job.expires_at = expires_at
        with self._guard("record validation for"):
            self._session.commit()
        return job

    def find_for_commit(
        self,
        *,
        token: str,
        tenant_id: str,
        dataset: str,
        requested_by: str,
    ) -> ImportJob | None:
        try:
            job_id = uuid.UUID(str(token))
        except ValueError:
            return None

        stmt = (
            select(ImportJob)
            .where(ImportJob.id == job_id)
            .where(ImportJob.tenant_id == tenant_id)
            .where(ImportJob.dataset == dataset)
            .where(ImportJob.requested_by == requested_by)
            .limit(1)
        )
        with self._guard("load"):
            return self._session.scalars(stmt).first()

    def get_job_for_tenant(self, job_id: str, tenant_id: str) -> ImportJob | None:
        try:
            parsed_id = uuid.UUID(str(job_id))
        except ValueError:
            return None

        stmt = select(ImportJob).where(ImportJob.id == parsed_id).where(ImportJob.tenant_id == tenant_id)
        with self._guard("load"):
            return self._session.scalars(stmt).first()

    def mark_expired(self, job: ImportJob) -> ImportJob:
        job.status = transition(job.status, JobEvent.EXPIRED).value
        with self._guard("expire"):
            self._session.commit()
        return job

    def mark_committed(
        self,
        job: ImportJob,
        *,
        imported: int,
        skipped: int,
        errors: Sequence[RowError],
    ) -> ImportJob:
        job.status = transition(job.status, JobEvent.COMMIT_SUCCEEDED).value
        job.mode = ImportMode.COMMIT.value
        job.imported_count = imported
        job.skipped_count = skipped
        job.error_count = len(errors)
        job.errors = [error.to_dict() for error in errors]
        job.committed_at = datetime.now(timezone.utc)
        with self._guard("commit"):
            self._session.commit()
        return job

    def mark_failed(
        self,
        job: ImportJob,
        *,
        reason: str,
        imported: int,
        skipped: int,
    ) -> ImportJob:
        job.status = transition(job.status, JobEvent.COMMIT_FAILED).value
        job.mode = ImportMode.COMMIT.value
        job.imported_count = imported
        job.skipped_count = skipped
        job.job_metadata = {
            **(job.job_metadata or {}),
            "failure_reason": reason,
            "failed_at": datetime.now(timezone.utc).isoformat(),
        }
        with self._guard("fail"):
            self._session.commit()
        return job

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def expire_stale_validations(self, *, now: datetime) -> int:
        stmt = (
            update(ImportJob)
            .where(ImportJob.mode == ImportMode.VALIDATE.value)
            .where(ImportJob.status == JobStatus.VALIDATED.value)
            .where(ImportJob.expires_at.is_not(None))
            .where(ImportJob.expires_at < now)
            .values(status=JobStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        with self._guard("expire"):
            result = self._session.execute(stmt)
            self._session.commit()
        return int(result.rowcount or 0)

    def redact_terminal_content(self, *, cutoff: datetime, now: datetime) -> int:
        marker = {"csv_redacted": True, "csv_redacted_at": now.isoformat()}
        stmt = (
            update(ImportJob)
            .where(ImportJob.raw_content.is_not(None))
            .where(ImportJob.created_at <= cutoff)
            .where(ImportJob.status.in_([status.value for status in TERMINAL_STATUSES]))
            .values(
                raw_content=None,
                job_metadata=ImportJob.job_metadata.op("||")(cast(marker, JSONB)),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        with self._guard("redact"):
            result = self._session.execute(stmt)
            self._session.commit()
        return int(result.rowcount or 0)

    def delete_older_than(self, *, cutoff: datetime) -> int:
        stmt = (
            delete(ImportJob)
            .where(ImportJob.created_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        with self._guard("delete"):
            result = self._session.execute(stmt)
            self._session.commit()
        return int(result.rowcount or 0)

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self._session.rollback()
            if is_missing_ledger_table(exc):
                raise LedgerUnavailableError("Import job ledger is not provisioned.") from exc
            raise LedgerPersistenceError(f"Failed to {action} import job.") from exc

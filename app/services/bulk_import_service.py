"""
app/services/bulk_import_service.py

Two-phase bulk import of estate records.

validate parses and checks every row, then stores the submitted text in an
import job with a validation token; no estate rows are written. commit
replays the stored text for a token (or takes text directly when no token
is given), writes rows through the batch writer in chunks, and recomputes
every aggregate the rows touched once all chunks are in.

Commits are not atomic. Each chunk commits on its own, so a failure leaves
earlier chunks written and the job marked failed with the imported count
that actually landed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol, Sequence

from app.config import ImportSettings, get_import_settings
from app.domain.bulk_import import (
    CommitOutcome,
    Dataset,
    ImportMode,
    Principal,
    RowContext,
    RowError,
    ValidateOutcome,
    ValidationReport,
    WriteSummary,
)
from app.domain.job_state import JobStatus, coerce_status
from app.importers import DatasetImporter, get_importer
from app.logging_utils import log_event, log_row_errors
from app.mappers.csv_records import CSVFormatError, ParsedCSV, content_fingerprint, parse_csv_records
from app.services.audit_sink import AuditSink, LoggingAuditSink
from app.services.batch_writer import BatchWriter, RecordStore
from app.services.location_resolver import LocationResolver, LocationStore
from app.services.recompute_trigger import (
    InventoryRecalculator,
    ProcessingTotalsRecalculator,
    RecomputeTrigger,
)
from db.models.import_job import ImportJob
from db.repositories.errors import EstateRepositoryError, LedgerUnavailableError

logger = logging.getLogger(__name__)

ALLOWED_IMPORT_ROLES: frozenset[str] = frozenset({"admin", "owner"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BulkImportError(Exception):
    """
    Base class for import failures that abort the whole request.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class UnsupportedDatasetError(BulkImportError, ValueError):
    status_code = 400


class EmptyImportError(BulkImportError, ValueError):
    status_code = 400


class InvalidCSVError(BulkImportError, ValueError):
    status_code = 400


class RowLimitExceededError(BulkImportError, ValueError):
    status_code = 400


class ImportAccessError(BulkImportError, PermissionError):
    status_code = 403


class RoleNotPermittedError(ImportAccessError):
    """Raised when the caller's role may not run imports."""


class ModuleAccessDeniedError(ImportAccessError):
    """Raised when the dataset's module is disabled for the caller."""


class ValidationTokenNotFoundError(BulkImportError, LookupError):
    status_code = 404


class ValidationTokenInvalidError(BulkImportError):
    """
    Raised when a token names a job whose validation found row errors.
    """

    status_code = 422

    def __init__(self, message: str, *, errors: Sequence[RowError]) -> None:
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "errors": [error.to_dict() for error in self.errors]}


class ValidationTokenCommittedError(BulkImportError):
    status_code = 409


class ValidationTokenExpiredError(BulkImportError):
    status_code = 410


class ValidationTokenNotReadyError(BulkImportError):
    status_code = 409


class ImportLedgerUnavailableError(BulkImportError):
    status_code = 503


class ImportWriteError(BulkImportError):
    """
    Raised when the write phase fails part-way.

    ``imported`` counts rows from chunks that were committed before the
    failure; those rows stay written.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        imported: int,
        skipped: int,
        errors: Sequence[RowError] = (),
    ) -> None:
        super().__init__(message)
        self.imported = imported
        self.skipped = skipped
        self.errors = list(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": [error.to_dict() for error in self.errors],
        }


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class ImportJobLedger(Protocol):
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
        ...

    def record_validation(
        self,
        job: ImportJob,
        *,
        errors: Sequence[RowError],
        skipped: int,
        expires_at: datetime,
    ) -> ImportJob:
        ...

    def find_for_commit(
        self,
        *,
        token: str,
        tenant_id: str,
        dataset: str,
        requested_by: str,
    ) -> ImportJob | None:
        ...

    def get_job_for_tenant(self, job_id: str, tenant_id: str) -> ImportJob | None:
        ...

    def mark_expired(self, job: ImportJob) -> ImportJob:
        ...

    def mark_committed(
        self,
        job: ImportJob,
        *,
        imported: int,
        skipped: int,
        errors: Sequence[RowError],
    ) -> ImportJob:
        ...

    def mark_failed(self, job: ImportJob, *, reason: str, imported: int, skipped: int) -> ImportJob:
        ...


class EstateRecordStore(RecordStore, Protocol):
    def resolve_bag_weight_kg(self, tenant_id: str, default: float) -> float:
        ...


def validate_rows(importer: DatasetImporter, parsed: ParsedCSV, ctx: RowContext) -> ValidationReport:
    """
    Check every row's required fields. Pure: no lookups, no writes.
    """

    errors: list[RowError] = []
    for row_number, record in parsed.numbered():
        error = importer.validate(record, row_number, ctx)
        if error is not None:
            errors.append(error)
    return ValidationReport(row_count=len(parsed.records), errors=errors)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BulkImportService:
    """
    Coordinates access checks, validation, the job ledger, writes and
    aggregate recomputation for one import request.
    """

    def __init__(
        self,
        *,
        ledger: ImportJobLedger,
        locations: LocationStore,
        records: EstateRecordStore,
        inventory: InventoryRecalculator,
        processing: ProcessingTotalsRecalculator,
        audit: AuditSink | None = None,
        settings: ImportSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._locations = locations
        self._records = records
        self._inventory = inventory
        self._processing = processing
        self._audit = audit or LoggingAuditSink()
        self._settings = settings or get_import_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(
        self,
        principal: Principal,
        *,
        dataset: str,
        mode: ImportMode | str,
        csv_text: str | None,
        validation_token: str | None = None,
    ) -> ValidateOutcome | CommitOutcome:
        """
        Dispatch one import request to validate, token commit or direct commit.
        """

        resolved = self.authorize(principal, dataset)
        if ImportMode(mode) is ImportMode.VALIDATE:
            return self.validate(principal, resolved, csv_text or "")
        if validation_token:
            return self.commit_validated(principal, resolved, validation_token)
        return self.commit_direct(principal, resolved, csv_text or "")

    def authorize(self, principal: Principal, dataset: str) -> Dataset:
        if principal.role not in ALLOWED_IMPORT_ROLES:
            raise RoleNotPermittedError("Admin role required")

        if not (dataset or "").strip():
            raise UnsupportedDatasetError("Dataset is required")
        resolved = Dataset.parse(dataset)
        if resolved is None:
            raise UnsupportedDatasetError("Unsupported dataset")

        if not principal.can_access(resolved.module_id):
            raise ModuleAccessDeniedError("Module access disabled")
        return resolved

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate(self, principal: Principal, dataset: Dataset, csv_text: str) -> ValidateOutcome:
        parsed = self._parse_input(csv_text)
        importer = get_importer(dataset)
        bag_weight_kg = (
            self._resolve_bag_weight(principal.tenant_id)
            if importer.uses_bag_weight
            else self._settings.default_bag_weight_kg
        )
        ctx = self._row_context(principal, bag_weight_kg)
        report = validate_rows(importer, parsed, ctx)
        if self._settings.log_row_errors:
            log_row_errors(logger, dataset.value, report.errors, phase="validate")

        fingerprint = content_fingerprint(csv_text)
        expires_at = self._clock() + timedelta(minutes=self._settings.validation_ttl_minutes)

        try:
            job = self._ledger.create_validation_job(
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                requested_by=principal.username,
                requested_by_user_id=principal.user_id,
                content_fingerprint=fingerprint,
                raw_content=csv_text,
                row_count=report.row_count,
            )
            job = self._ledger.record_validation(
                job,
                errors=report.errors,
                skipped=report.skipped_count,
                expires_at=expires_at,
            )
        except LedgerUnavailableError:
            log_event(
                logger,
                logging.WARNING,
                "import_ledger_unavailable",
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                phase="validate",
            )
            return ValidateOutcome(
                dataset=dataset,
                valid=report.is_valid,
                row_count=report.row_count,
                skipped=report.skipped_count,
                errors=report.errors,
                validation_token=None,
                expires_at=None,
                ledger_available=False,
            )

        log_event(
            logger,
            logging.INFO,
            "import_validated" if report.is_valid else "import_invalid",
            tenant_id=principal.tenant_id,
            dataset=dataset.value,
            job_id=str(job.id),
            row_count=report.row_count,
            error_count=report.skipped_count,
            content_fingerprint=fingerprint,
        )
        return ValidateOutcome(
            dataset=dataset,
            valid=report.is_valid,
            row_count=report.row_count,
            skipped=report.skipped_count,
            errors=report.errors,
            validation_token=str(job.id) if report.is_valid else None,
            expires_at=expires_at if report.is_valid else None,
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit_validated(self, principal: Principal, dataset: Dataset, token: str) -> CommitOutcome:
        """
        Commit the content stored under a validation token.
        """

        try:
            job = self._ledger.find_for_commit(
                token=token,
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                requested_by=principal.username,
            )
        except LedgerUnavailableError as exc:
            raise ImportLedgerUnavailableError("Import validation is not enabled") from exc

        if job is None:
            raise ValidationTokenNotFoundError("Validation token not found")

        status = coerce_status(job.status)
        if status is JobStatus.INVALID:
            raise ValidationTokenInvalidError(
                "Validation token refers to an invalid import",
                errors=[RowError.from_dict(error) for error in job.errors or []],
            )
        if status is JobStatus.COMMITTED:
            raise ValidationTokenCommittedError("Validation token already used")
        if status is JobStatus.EXPIRED:
            raise ValidationTokenExpiredError("Validation token expired")
        if status is not JobStatus.VALIDATED or job.raw_content is None:
            raise ValidationTokenNotReadyError("Validation token is not ready for commit")

        if job.expires_at is not None and job.expires_at <= self._clock():
            self._ledger.mark_expired(job)
            log_event(
                logger,
                logging.INFO,
                "import_token_expired",
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                job_id=str(job.id),
            )
            raise ValidationTokenExpiredError("Validation token expired")

        try:
            summary = self._write(principal, dataset, self._parse_input(job.raw_content))
        except ImportWriteError as exc:
            self._record_failure(job, exc)
            log_event(
                logger,
                logging.ERROR,
                "import_failed",
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                job_id=str(job.id),
                imported=exc.imported,
                reason=exc.message,
            )
            raise

        self._ledger.mark_committed(
            job,
            imported=summary.imported,
            skipped=summary.skipped,
            errors=summary.errors,
        )
        self._after_commit(principal, dataset, summary, token=str(job.id))
        return CommitOutcome(
            dataset=dataset,
            imported=summary.imported,
            skipped=summary.skipped,
            errors=summary.errors,
            validation_token=str(job.id),
        )

    def commit_direct(self, principal: Principal, dataset: Dataset, csv_text: str) -> CommitOutcome:
        """
        Single-phase import of submitted content; no job row is created.
        """

        parsed = self._parse_input(csv_text)
        try:
            summary = self._write(principal, dataset, parsed)
        except ImportWriteError as exc:
            log_event(
                logger,
                logging.ERROR,
                "import_failed",
                tenant_id=principal.tenant_id,
                dataset=dataset.value,
                job_id=None,
                imported=exc.imported,
                reason=exc.message,
            )
            raise

        self._after_commit(
            principal,
            dataset,
            summary,
            token=None,
            fingerprint=content_fingerprint(csv_text),
        )
        return CommitOutcome(
            dataset=dataset,
            imported=summary.imported,
            skipped=summary.skipped,
            errors=summary.errors,
        )

    def get_job(self, principal: Principal, job_id: str) -> ImportJob:
        try:
            job = self._ledger.get_job_for_tenant(job_id, principal.tenant_id)
        except LedgerUnavailableError as exc:
            raise ImportLedgerUnavailableError("Import validation is not enabled") from exc
        if job is None:
            raise ValidationTokenNotFoundError("Import job not found")
        return job

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _write(self, principal: Principal, dataset: Dataset, parsed: ParsedCSV) -> WriteSummary:
        importer = get_importer(dataset)
        bag_weight_kg = self._resolve_bag_weight(principal.tenant_id)
        ctx = self._row_context(principal, bag_weight_kg)

        resolver = LocationResolver(self._locations, principal.tenant_id, cache={})
        writer = BatchWriter(
            self._records,
            chunk_size=self._settings.chunk_size if importer.chunked else 1,
        )
        trigger = RecomputeTrigger(
            tenant_id=principal.tenant_id,
            bag_weight_kg=bag_weight_kg,
            inventory=self._inventory,
            processing=self._processing,
        )
        errors: list[RowError] = []

        try:
            for row_number, record in parsed.numbered():
                outcome = importer.build(record, row_number, ctx, resolver)
                if isinstance(outcome, RowError):
                    errors.append(outcome)
                    continue
                writer.submit(outcome)
                trigger.touch(outcome.touched)
            writer.flush()
            trigger.run()
        except BulkImportError:
            raise
        except Exception as exc:
            raise ImportWriteError(
                f"Import failed: {exc}",
                imported=writer.imported,
                skipped=len(errors),
                errors=errors,
            ) from exc

        if errors and self._settings.log_row_errors:
            log_row_errors(logger, dataset.value, errors, phase="commit")
        return WriteSummary(imported=writer.imported, skipped=len(errors), errors=errors)

    def _record_failure(self, job: ImportJob, exc: ImportWriteError) -> None:
        try:
            self._ledger.mark_failed(job, reason=exc.message, imported=exc.imported, skipped=exc.skipped)
        except EstateRepositoryError:
            logger.exception("Failed to mark import job %s as failed", job.id)

    def _after_commit(
        self,
        principal: Principal,
        dataset: Dataset,
        summary: WriteSummary,
        *,
        token: str | None,
        fingerprint: str | None = None,
    ) -> None:
        details = {
            "dataset": dataset.value,
            "imported": summary.imported,
            "skipped": summary.skipped,
            "validation_token": token,
        }
        if fingerprint is not None:
            details["content_fingerprint"] = fingerprint
        self._audit.record(
            principal,
            action="import",
            entity_type=dataset.value,
            entity_id=token,
            after=details,
        )
        log_event(
            logger,
            logging.INFO,
            "import_committed",
            tenant_id=principal.tenant_id,
            **details,
        )

    def _parse_input(self, csv_text: str) -> ParsedCSV:
        if not csv_text.strip():
            raise EmptyImportError("CSV content is required")
        try:
            parsed = parse_csv_records(csv_text)
        except CSVFormatError as exc:
            raise InvalidCSVError(str(exc)) from exc
        if not parsed.records:
            raise EmptyImportError("No rows found in CSV")
        if len(parsed.records) > self._settings.max_rows:
            raise RowLimitExceededError(
                f"CSV exceeds {self._settings.max_rows} rows. Split into smaller uploads."
            )
        return parsed

    def _resolve_bag_weight(self, tenant_id: str) -> float:
        return self._records.resolve_bag_weight_kg(tenant_id, self._settings.default_bag_weight_kg)

    @staticmethod
    def _row_context(principal: Principal, bag_weight_kg: float) -> RowContext:
        return RowContext(
            tenant_id=principal.tenant_id,
            username=principal.username,
            bag_weight_kg=bag_weight_kg,
        )

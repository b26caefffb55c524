"""
app/api/routers/bulk_import.py

Bulk CSV import HTTP endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_bulk_import_service, get_principal
from app.domain.bulk_import import Principal, RowError, ValidateOutcome
from app.schemas.bulk_import import (
    BulkImportRequest,
    CommitImportResponse,
    ImportJobResponse,
    RowErrorResponse,
    ValidateImportResponse,
)
from app.services.bulk_import_service import (
    BulkImportError,
    BulkImportService,
    ImportLedgerUnavailableError,
    ImportWriteError,
)
from db.repositories.errors import EstateRepositoryError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["import"])


def _error_payloads(errors: list[RowError]) -> list[RowErrorResponse]:
    return [RowErrorResponse(row=error.row, message=error.message) for error in errors]


def _to_http_error(exc: BulkImportError) -> HTTPException:
    detail = exc.to_dict()
    if isinstance(exc, ImportLedgerUnavailableError):
        detail["code"] = "feature_not_enabled"
    return HTTPException(status_code=exc.status_code, detail=detail)


@router.post("/import-bulk", response_model=None)
def import_bulk(
    payload: BulkImportRequest,
    principal: Principal = Depends(get_principal),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> ValidateImportResponse | CommitImportResponse:
    """
    Validate or commit one CSV import for the caller's tenant.
    """

    try:
        outcome = import_service.run(
            principal,
            dataset=payload.dataset,
            mode=payload.mode,
            csv_text=payload.csv,
            validation_token=payload.validation_token,
        )
    except ImportWriteError as exc:
        logger.error("Import write failed dataset=%s imported=%d", payload.dataset, exc.imported)
        raise _to_http_error(exc) from exc
    except BulkImportError as exc:
        raise _to_http_error(exc) from exc
    except EstateRepositoryError as exc:
        logger.exception("Import failed dataset=%s", payload.dataset)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Import failed"},
        ) from exc

    if isinstance(outcome, ValidateOutcome):
        return ValidateImportResponse(
            valid=outcome.valid,
            row_count=outcome.row_count,
            skipped=outcome.skipped,
            errors=_error_payloads(outcome.errors),
            validation_token=outcome.validation_token,
            expires_at=outcome.expires_at,
            ledger_available=outcome.ledger_available,
        )

    return CommitImportResponse(
        imported=outcome.imported,
        skipped=outcome.skipped,
        errors=_error_payloads(outcome.errors),
        validation_token=outcome.validation_token,
    )


@router.get("/import-jobs/{job_id}", response_model=ImportJobResponse)
def get_import_job(
    job_id: str,
    principal: Principal = Depends(get_principal),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> ImportJobResponse:
    """
    Return the status of one import job owned by the caller's tenant.
    """

    try:
        job = import_service.get_job(principal, job_id)
    except BulkImportError as exc:
        raise _to_http_error(exc) from exc

    return ImportJobResponse(
        id=str(job.id),
        dataset=job.dataset,
        mode=job.mode,
        status=job.status,
        requested_by=job.requested_by,
        row_count=job.row_count,
        imported_count=job.imported_count,
        skipped_count=job.skipped_count,
        error_count=job.error_count,
        errors=_error_payloads([RowError.from_dict(error) for error in job.errors or []]),
        metadata=dict(job.job_metadata or {}),
        expires_at=job.expires_at,
        committed_at=job.committed_at,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )

"""
app/schemas package marker.
"""

from app.schemas.bulk_import import (
    BulkImportRequest,
    CommitImportResponse,
    ImportJobResponse,
    RowErrorResponse,
    ValidateImportResponse,
)

__all__ = [
    "BulkImportRequest",
    "CommitImportResponse",
    "ImportJobResponse",
    "RowErrorResponse",
    "ValidateImportResponse",
]

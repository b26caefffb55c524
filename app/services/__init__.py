"""
app/services package marker.
"""

from app.services.bulk_import_service import (
    BulkImportError,
    BulkImportService,
    ImportLedgerUnavailableError,
    ImportWriteError,
)
from app.services.import_job_retention import ImportJobCleanupResult, ImportJobRetentionService

__all__ = [
    "BulkImportError",
    "BulkImportService",
    "ImportJobCleanupResult",
    "ImportJobRetentionService",
    "ImportLedgerUnavailableError",
    "ImportWriteError",
]

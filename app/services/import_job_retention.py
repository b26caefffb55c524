"""
app/services/import_job_retention.py

Periodic cleanup of the import job ledger: expire stale validation tokens,
redact stored CSV text from finished jobs, and delete old jobs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from app.config import ImportSettings, get_import_settings
from app.logging_utils import log_event
from db.repositories.errors import LedgerUnavailableError

logger = logging.getLogger(__name__)

LEDGER_NOT_PROVISIONED_REASON = "import_jobs table is missing; run 'alembic upgrade head' first."


class RetentionLedger(Protocol):
    def expire_stale_validations(self, *, now: datetime) -> int:
        ...

    def redact_terminal_content(self, *, cutoff: datetime, now: datetime) -> int:
        ...

    def delete_older_than(self, *, cutoff: datetime) -> int:
        ...


@dataclass(frozen=True)
class ImportJobCleanupResult:
    skipped: bool
    retention_days: int
    csv_retention_days: int
    expired_count: int = 0
    redacted_count: int = 0
    deleted_count: int = 0
    reason: str | None = None


class ImportJobRetentionService:
    def __init__(
        self,
        ledger: RetentionLedger,
        *,
        settings: ImportSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._settings = settings or get_import_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self) -> ImportJobCleanupResult:
        retention_days = self._settings.job_retention_days
        csv_retention_days = self._settings.csv_retention_days
        now = self._clock()

        try:
            expired = self._ledger.expire_stale_validations(now=now)
            redacted = self._ledger.redact_terminal_content(
                cutoff=now - timedelta(days=csv_retention_days),
                now=now,
            )
            deleted = self._ledger.delete_older_than(cutoff=now - timedelta(days=retention_days))
        except LedgerUnavailableError:
            log_event(
                logger,
                logging.WARNING,
                "import_job_retention_skipped",
                reason=LEDGER_NOT_PROVISIONED_REASON,
            )
            return ImportJobCleanupResult(
                skipped=True,
                reason=LEDGER_NOT_PROVISIONED_REASON,
                retention_days=retention_days,
                csv_retention_days=csv_retention_days,
            )

        result = ImportJobCleanupResult(
            skipped=False,
            retention_days=retention_days,
            csv_retention_days=csv_retention_days,
            expired_count=expired,
            redacted_count=redacted,
            deleted_count=deleted,
        )
        log_event(
            logger,
            logging.INFO,
            "import_job_retention_completed",
            expired_count=expired,
            redacted_count=redacted,
            deleted_count=deleted,
            retention_days=retention_days,
            csv_retention_days=csv_retention_days,
        )
        return result

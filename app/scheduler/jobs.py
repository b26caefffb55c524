"""
app/scheduler/jobs.py

APScheduler-based scheduler for import job ledger housekeeping.

Schedule (all times UTC)
--------------------------
  import_job_retention: 02:15 every day

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.services.import_job_retention import ImportJobCleanupResult, ImportJobRetentionService
from db.repositories.import_job_repository import ImportJobRepository
from db.session import session_scope

logger = logging.getLogger(__name__)


def run_import_job_retention() -> ImportJobCleanupResult | None:
    """
    Expire stale tokens, redact old CSV text and delete aged-out jobs.

    Failures are logged; the next daily run retries.
    """
    logger.info("Scheduler: import_job_retention starting")
    with session_scope() as db:
        try:
            result = ImportJobRetentionService(ImportJobRepository(db)).run()
        except Exception:  # noqa: BLE001
            logger.exception("Scheduler: import_job_retention failed")
            return None
    logger.info(
        "Scheduler: import_job_retention done skipped=%s expired=%d redacted=%d deleted=%d",
        result.skipped,
        result.expired_count,
        result.redacted_count,
        result.deleted_count,
    )
    return result


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_import_job_retention,
        trigger="cron",
        hour=2,
        minute=15,
        id="import_job_retention",
        name="Import job retention cleanup",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler

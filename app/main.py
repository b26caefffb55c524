from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from db.models.import_job import IMPORT_JOBS_TABLE

# Tables the import service may run without; their absence is logged only.
_OPTIONAL_TABLES: frozenset[str] = frozenset({IMPORT_JOBS_TABLE})


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A PostgreSQL URL must resolve from DATABASE_URL, or from
      CLOUD_DATABASE_URL / LOCAL_DATABASE_URL depending on ENVIRONMENT.
    - No empty-string values are accepted.
    - Import tuning variables, when set, must be integers.
    """

    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        url = resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))
    else:
        if not url.startswith("postgresql"):
            errors.append("Database URL must point at PostgreSQL; imports rely on ON CONFLICT upserts.")

    # --- Import tuning --------------------------------------------------
    for name in (
        "IMPORT_CHUNK_SIZE",
        "IMPORT_MAX_ROWS",
        "IMPORT_VALIDATION_TTL_MINUTES",
        "IMPORT_JOB_RETENTION_DAYS",
        "IMPORT_JOB_CSV_RETENTION_DAYS",
    ):
        raw = os.getenv(name)
        if raw is None:
            continue
        try:
            int(raw.strip())
        except ValueError:
            errors.append(f"{name}='{raw}' is not an integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import session_scope

    try:
        with session_scope() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Estate tables must exist or startup aborts. The import job ledger is
    optional: without it validate mode runs without a token and token
    commits answer "feature not enabled".

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    log = logging.getLogger(__name__)
    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    optional_missing = missing & _OPTIONAL_TABLES
    if optional_missing:
        log.warning(
            "Import job ledger table(s) missing: %s. Validation tokens are disabled "
            "until 'alembic upgrade head' is run.",
            ", ".join(sorted(optional_missing)),
        )

    required_missing = missing - _OPTIONAL_TABLES
    if required_missing:
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(required_missing),
            ", ".join(sorted(required_missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(required_missing)} table(s) missing from the database "
            f"({', '.join(sorted(required_missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the scheduler on boot; shut it down on exit."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Estate Bulk Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import bulk_import_router

    application.include_router(bulk_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()

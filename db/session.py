"""
db/session.py

Engine and session plumbing for the estate ledger database.

The engine is built on first use so that importing the app (or the tests)
never needs a reachable database.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings, get_database_settings

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def create_db_engine(settings: DatabaseSettings | None = None) -> Engine:
    settings = settings or get_database_settings()
    if not settings.is_postgres:
        raise RuntimeError("Only PostgreSQL URLs are supported; imports rely on ON CONFLICT upserts.")

    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle_seconds,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for work outside a request, e.g. scheduled jobs.

    Repositories commit their own units of work; the scope only guarantees
    the session is closed.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    with session_scope() as db:
        yield db

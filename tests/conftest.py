"""
tests/conftest.py

Shared fixtures wiring the in-memory fakes into a BulkImportService.
"""

from __future__ import annotations

from typing import Any

import pytest

from app.config import ImportSettings
from app.domain.bulk_import import Principal
from app.services.bulk_import_service import BulkImportService
from tests.fakes import (
    TENANT_ID,
    FakeClock,
    FakeLedger,
    FakeLocationStore,
    FakeRecordStore,
    RecordingAuditSink,
    RecordingRecalculator,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ledger(clock: FakeClock) -> FakeLedger:
    return FakeLedger(clock)


@pytest.fixture()
def locations() -> FakeLocationStore:
    store = FakeLocationStore()
    store.add(TENANT_ID, "Main Estate", "MAIN")
    store.add(TENANT_ID, "North Block", "NORTH")
    store.add("tenant-b", "Main Estate", "MAIN")
    return store


@pytest.fixture()
def records() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture()
def recalculator() -> RecordingRecalculator:
    return RecordingRecalculator()


@pytest.fixture()
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture()
def settings() -> ImportSettings:
    return ImportSettings(chunk_size=100, max_rows=5000, validation_ttl_minutes=30)


@pytest.fixture()
def admin() -> Principal:
    return Principal(username="asha", role="admin", tenant_id=TENANT_ID, user_id="u-1")


@pytest.fixture()
def make_service(ledger, locations, records, recalculator, audit, clock, settings):
    def _make(**overrides: Any) -> BulkImportService:
        kwargs: dict[str, Any] = {
            "ledger": ledger,
            "locations": locations,
            "records": records,
            "inventory": recalculator,
            "processing": recalculator,
            "audit": audit,
            "settings": settings,
            "clock": clock,
        }
        kwargs.update(overrides)
        return BulkImportService(**kwargs)

    return _make


@pytest.fixture()
def service(make_service) -> BulkImportService:
    return make_service()

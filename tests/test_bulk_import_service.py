"""
tests/test_bulk_import_service.py

End-to-end behaviour of BulkImportService against in-memory collaborators.

Coverage
--------
- Access checks and their order
- Validate: no estate writes, token issue, invalid jobs, row limit
- Token commit: replay of stored content, double commit, expiry, ownership
- Direct commit and skipped rows
- Chunking, upserts, append-only datasets
- Aggregate recomputation once per touched key
- Location creation for repeated new labels
- Partial failure accounting
- Degraded operation without the job ledger
"""

from __future__ import annotations

import uuid

import pytest

from app.config import ImportSettings
from app.domain.bulk_import import CommitOutcome, Principal, RowError, ValidateOutcome
from app.domain.job_state import JobStatus
from app.mappers.csv_records import content_fingerprint
from app.services.bulk_import_service import (
    BulkImportService,
    EmptyImportError,
    ImportLedgerUnavailableError,
    ImportWriteError,
    ModuleAccessDeniedError,
    RoleNotPermittedError,
    RowLimitExceededError,
    UnsupportedDatasetError,
    ValidationTokenCommittedError,
    ValidationTokenExpiredError,
    ValidationTokenInvalidError,
    ValidationTokenNotFoundError,
    ValidationTokenNotReadyError,
)
from db.repositories.errors import LedgerPersistenceError
from tests.fakes import TENANT_ID, FakeRecordStore, RecordingRecalculator

PROCESSING_CSV = (
    "process_date,coffee_type,location,crop_today,ripe_today\n"
    "2024-01-05,Arabica,Main Estate,100,80\n"
    "2024-01-06,Arabica,Main Estate,120,90\n"
    "2024-01-06,Robusta,North Block,50,40\n"
)

RAINFALL_CSV = "date,inches\n" + "".join(f"2024-06-0{day},1.{day}\n" for day in range(1, 6))


def _validate(service: BulkImportService, principal: Principal, dataset: str, csv_text: str) -> ValidateOutcome:
    outcome = service.run(principal, dataset=dataset, mode="validate", csv_text=csv_text)
    assert isinstance(outcome, ValidateOutcome)
    return outcome


def _commit(
    service: BulkImportService,
    principal: Principal,
    dataset: str,
    csv_text: str | None = None,
    token: str | None = None,
) -> CommitOutcome:
    outcome = service.run(
        principal,
        dataset=dataset,
        mode="commit",
        csv_text=csv_text,
        validation_token=token,
    )
    assert isinstance(outcome, CommitOutcome)
    return outcome


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


class TestAccess:
    def test_non_admin_role_is_rejected_first(self, service: BulkImportService) -> None:
        viewer = Principal(username="ravi", role="viewer", tenant_id=TENANT_ID)

        with pytest.raises(RoleNotPermittedError) as excinfo:
            service.run(viewer, dataset="nonsense", mode="validate", csv_text=PROCESSING_CSV)

        assert excinfo.value.status_code == 403
        assert excinfo.value.message == "Admin role required"

    def test_owner_role_is_allowed(self, service: BulkImportService) -> None:
        owner = Principal(username="meera", role="owner", tenant_id=TENANT_ID)
        assert _validate(service, owner, "processing", PROCESSING_CSV).valid

    @pytest.mark.parametrize(
        ("dataset", "message"),
        [("", "Dataset is required"), ("coffee", "Unsupported dataset")],
    )
    def test_dataset_must_be_known(
        self, service: BulkImportService, admin: Principal, dataset: str, message: str
    ) -> None:
        with pytest.raises(UnsupportedDatasetError, match=message):
            service.run(admin, dataset=dataset, mode="validate", csv_text=PROCESSING_CSV)

    def test_dataset_name_is_case_insensitive(self, service: BulkImportService, admin: Principal) -> None:
        assert _validate(service, admin, " Processing ", PROCESSING_CSV).valid

    def test_labor_and_expenses_need_accounts_module(self, service: BulkImportService) -> None:
        limited = Principal(
            username="asha",
            role="admin",
            tenant_id=TENANT_ID,
            enabled_modules=frozenset({"processing", "labor"}),
        )

        with pytest.raises(ModuleAccessDeniedError, match="Module access disabled"):
            service.run(limited, dataset="labor", mode="validate", csv_text="date,code\n2024-01-01,W\n")
        assert _validate(service, limited, "processing", PROCESSING_CSV).valid


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_validate_writes_nothing(
        self, service, admin, records, locations, recalculator, ledger
    ) -> None:
        outcome = _validate(service, admin, "processing", "date,coffee_type,location\n2024-01-05,Arabica,Brand New Block\n")

        assert outcome.valid
        assert outcome.row_count == 1
        assert records.tables == {}
        assert locations.created == []
        assert recalculator.processing_calls == []

        job = ledger.jobs[outcome.validation_token]
        assert job.status == JobStatus.VALIDATED.value
        assert job.raw_content.startswith("date,coffee_type,location")
        assert job.content_fingerprint == content_fingerprint(job.raw_content)

    def test_token_expires_after_ttl(self, service, admin, clock) -> None:
        outcome = _validate(service, admin, "processing", PROCESSING_CSV)
        assert (outcome.expires_at - clock()).total_seconds() == 30 * 60

    def test_invalid_rows_are_reported_without_token(self, service, admin, ledger) -> None:
        csv_text = (
            "process_date,coffee_type,location\n"
            "2024-01-05,Arabica,Main Estate\n"
            "not-a-date,Arabica,Main Estate\n"
            "2024-01-07,,Main Estate\n"
        )

        outcome = _validate(service, admin, "processing", csv_text)

        assert not outcome.valid
        assert outcome.validation_token is None
        assert outcome.expires_at is None
        assert outcome.skipped == 2
        assert [error.row for error in outcome.errors] == [3, 4]

        (job,) = ledger.jobs.values()
        assert job.status == JobStatus.INVALID.value
        assert job.error_count == 2

    def test_empty_and_header_only_input(self, service, admin, ledger) -> None:
        with pytest.raises(EmptyImportError, match="CSV content is required"):
            _validate(service, admin, "processing", "  \n")
        with pytest.raises(EmptyImportError, match="No rows found in CSV"):
            _validate(service, admin, "processing", "process_date,coffee_type,location\n")
        assert ledger.jobs == {}

    def test_row_limit_rejects_before_creating_a_job(self, service, admin, ledger) -> None:
        csv_text = "date,inches\n" + "2024-06-01,1\n" * 5001

        with pytest.raises(RowLimitExceededError, match="CSV exceeds 5000 rows"):
            _validate(service, admin, "rainfall", csv_text)
        assert ledger.jobs == {}

    def test_bag_weight_is_read_only_for_sales(self, service, admin, records) -> None:
        _validate(service, admin, "processing", PROCESSING_CSV)
        assert records.bag_weight_reads == 0

        _validate(
            service,
            admin,
            "sales",
            "date,coffee_type,bag_type,location,kgs,price_per_kg\n2024-04-01,Arabica,parchment,Main,300,20\n",
        )
        assert records.bag_weight_reads == 1


# ---------------------------------------------------------------------------
# Token commit
# ---------------------------------------------------------------------------


class TestTokenCommit:
    def test_commit_replays_stored_content(self, service, admin, records, ledger, audit) -> None:
        token = _validate(service, admin, "processing", PROCESSING_CSV).validation_token

        outcome = _commit(service, admin, "processing", csv_text="ignored,body\n1,2\n", token=token)

        assert outcome.imported == 3
        assert outcome.skipped == 0
        assert outcome.validation_token == token
        assert len(records.rows("processing_records")) == 3

        job = ledger.jobs[token]
        assert job.status == JobStatus.COMMITTED.value
        assert job.imported_count == 3
        assert job.committed_at is not None

        (event,) = audit.events
        assert event["action"] == "import"
        assert event["entity_type"] == "processing"
        assert event["entity_id"] == token

    def test_second_commit_is_rejected(self, service, admin, records) -> None:
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        _commit(service, admin, "rainfall", token=token)

        with pytest.raises(ValidationTokenCommittedError) as excinfo:
            _commit(service, admin, "rainfall", token=token)

        assert excinfo.value.status_code == 409
        assert len(records.rows("rainfall_records")) == 5

    def test_expired_token_moves_job_to_expired(self, service, admin, ledger, records, clock) -> None:
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        clock.advance(minutes=30)

        with pytest.raises(ValidationTokenExpiredError) as excinfo:
            _commit(service, admin, "rainfall", token=token)

        assert excinfo.value.status_code == 410
        assert ledger.jobs[token].status == JobStatus.EXPIRED.value
        assert records.tables == {}

        with pytest.raises(ValidationTokenExpiredError):
            _commit(service, admin, "rainfall", token=token)

    def test_token_just_before_expiry_commits(self, service, admin, clock) -> None:
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        clock.advance(minutes=29, seconds=59)

        assert _commit(service, admin, "rainfall", token=token).imported == 5

    def test_invalid_job_token_returns_its_errors(self, service, admin, ledger) -> None:
        _validate(service, admin, "rainfall", "date,inches\nsoon,1\n")
        (job,) = ledger.jobs.values()

        with pytest.raises(ValidationTokenInvalidError) as excinfo:
            _commit(service, admin, "rainfall", token=str(job.id))

        assert excinfo.value.status_code == 422
        assert excinfo.value.errors == [RowError(row=2, message="Missing record_date")]

    def test_token_is_bound_to_user_dataset_and_tenant(self, service, admin) -> None:
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        colleague = Principal(username="ravi", role="admin", tenant_id=TENANT_ID)
        outsider = Principal(username="asha", role="admin", tenant_id="tenant-b")

        with pytest.raises(ValidationTokenNotFoundError):
            _commit(service, colleague, "rainfall", token=token)
        with pytest.raises(ValidationTokenNotFoundError):
            _commit(service, admin, "pepper", token=token)
        with pytest.raises(ValidationTokenNotFoundError):
            _commit(service, outsider, "rainfall", token=token)
        with pytest.raises(ValidationTokenNotFoundError) as excinfo:
            _commit(service, admin, "rainfall", token=str(uuid.uuid4()))
        assert excinfo.value.status_code == 404


# ---------------------------------------------------------------------------
# Direct commit and write semantics
# ---------------------------------------------------------------------------


class TestWrites:
    def test_direct_commit_creates_no_job(self, service, admin, ledger, audit) -> None:
        outcome = _commit(service, admin, "rainfall", RAINFALL_CSV)

        assert outcome.imported == 5
        assert outcome.validation_token is None
        assert ledger.jobs == {}
        assert audit.events[0]["after"]["content_fingerprint"] == content_fingerprint(RAINFALL_CSV)

    def test_invalid_rows_are_skipped_on_direct_commit(self, service, admin, records) -> None:
        outcome = _commit(service, admin, "rainfall", "date,inches\n2024-06-01,1\nlater,2\n2024-06-03,3\n")

        assert outcome.imported == 2
        assert outcome.skipped == 1
        assert outcome.errors == [RowError(row=3, message="Missing record_date")]
        assert len(records.rows("rainfall_records")) == 2

    def test_overlong_cell_skips_only_its_row(self, service, admin, records) -> None:
        csv_text = (
            "date,variety,location,crop\n"
            "2024-01-05,Arabica,Main Estate,100\n"
            f"2024-01-06,{'x' * 70},Main Estate,200\n"
            "2024-01-07,Robusta,North Block,300\n"
        )
        expected_error = RowError(row=3, message="coffee_type exceeds 64 characters")

        validated = _validate(service, admin, "processing", csv_text)
        assert validated.valid is False
        assert validated.errors == [expected_error]

        outcome = _commit(service, admin, "processing", csv_text)

        assert outcome.imported == 2
        assert outcome.errors == [expected_error]
        assert len(records.rows("processing_records")) == 2

    def test_chunk_size_does_not_change_the_result(self, make_service, admin) -> None:
        small, large = FakeRecordStore(), FakeRecordStore()
        make_service(records=small, settings=ImportSettings(chunk_size=1)).run(
            admin, dataset="rainfall", mode="commit", csv_text=RAINFALL_CSV
        )
        make_service(records=large, settings=ImportSettings(chunk_size=100)).run(
            admin, dataset="rainfall", mode="commit", csv_text=RAINFALL_CSV
        )

        assert small.group_sizes == [1, 1, 1, 1, 1]
        assert large.group_sizes == [5]
        assert small.rows("rainfall_records") == large.rows("rainfall_records")

    def test_upsert_datasets_are_idempotent(self, service, admin, records) -> None:
        _commit(service, admin, "processing", PROCESSING_CSV)
        _commit(service, admin, "processing", PROCESSING_CSV.replace(",100,80", ",150,80"))

        rows = records.rows("processing_records")
        assert len(rows) == 3
        assert rows[0]["crop_today"] == 150.0

    def test_append_only_datasets_accumulate(self, service, admin, records) -> None:
        _commit(service, admin, "rainfall", RAINFALL_CSV)
        _commit(service, admin, "rainfall", RAINFALL_CSV)

        assert len(records.rows("rainfall_records")) == 10

    def test_sales_derivations_with_default_bag_weight(self, service, admin, records) -> None:
        _commit(
            service,
            admin,
            "sales",
            "date,coffee_type,bag_type,location,kgs,price_per_kg\n2024-04-01,Arabica,parchment,Main Estate,300,20\n",
        )

        (row,) = records.rows("sales_records")
        assert (row["bags_sold"], row["price_per_bag"], row["revenue"]) == (6, 1000, 6000)
        assert row["estate"] == "Main Estate"

    def test_sales_use_tenant_bag_weight(self, make_service, admin) -> None:
        records = FakeRecordStore(bag_weight_kg=60.0)
        make_service(records=records).run(
            admin,
            dataset="sales",
            mode="commit",
            csv_text="date,coffee_type,bag_type,location,kgs,price_per_kg\n2024-04-01,Arabica,parchment,Main,300,20\n",
        )

        (row,) = records.rows("sales_records")
        assert (row["bags_sold"], row["price_per_bag"], row["revenue"]) == (5, 1200, 6000)

    def test_pepper_percentages(self, service, admin, records) -> None:
        _commit(service, admin, "pepper", "date,location,kg_picked,green_pepper\n2024-02-01,North Block,200,150\n")

        (row,) = records.rows("pepper_records")
        assert row["green_pepper_percent"] == 75.0

    def test_repeated_new_label_creates_one_location(self, service, admin, locations, records) -> None:
        csv_text = (
            "process_date,coffee_type,location\n"
            "2024-01-05,Arabica,Lakeview\n"
            "2024-01-06,Arabica,lakeview\n"
            "2024-01-07,Robusta,LAKEVIEW\n"
        )

        _commit(service, admin, "processing", csv_text)

        assert [info.code for info in locations.created] == ["LAKEVIEW"]
        assert {row["location_id"] for row in records.rows("processing_records")} == {locations.created[0].id}

    def test_inventory_rows_are_written_immediately(self, service, admin, records, recalculator) -> None:
        outcome = _commit(service, admin, "inventory", "item,qty,price\nUrea,5,3\nPotash,0,0\n")

        assert outcome.imported == 2
        assert records.group_sizes == []
        assert len(records.rows("current_inventory")) == 2
        assert len(records.rows("transaction_history")) == 1
        assert recalculator.inventory_calls == [(TENANT_ID, "Urea", None), (TENANT_ID, "Potash", None)]


# ---------------------------------------------------------------------------
# Aggregate recomputation
# ---------------------------------------------------------------------------


class _SnapshotRecalculator(RecordingRecalculator):
    def __init__(self, records: FakeRecordStore) -> None:
        super().__init__()
        self._records = records
        self.history_sizes: list[int] = []

    def recalculate_inventory(self, tenant_id: str, item_type: str, location_id: str | None) -> None:
        self.history_sizes.append(len(self._records.rows("transaction_history")))
        super().recalculate_inventory(tenant_id, item_type, location_id)


class TestRecompute:
    def test_each_stock_key_recalculated_once_after_all_writes(
        self, make_service, admin, records, locations
    ) -> None:
        recalculator = _SnapshotRecalculator(records)
        service = make_service(inventory=recalculator, settings=ImportSettings(chunk_size=2))
        csv_text = (
            "date,item,qty,type,location\n"
            "2024-02-01,Urea,10,restock,Main Estate\n"
            "2024-02-02,Urea,4,use,Main Estate\n"
            "2024-02-03,Urea,1,use,\n"
            "2024-02-03,Potash,2,restock,main estate\n"
        )

        _commit(service, admin, "transactions", csv_text)

        main_id = locations.find_location_by_code(TENANT_ID, "MAIN").id
        assert recalculator.inventory_calls == [
            (TENANT_ID, "Urea", main_id),
            (TENANT_ID, "Urea", None),
            (TENANT_ID, "Potash", main_id),
        ]
        assert recalculator.history_sizes == [4, 4, 4]

    def test_processing_totals_use_tenant_bag_weight(self, make_service, admin, recalculator, locations) -> None:
        service = make_service(records=FakeRecordStore(bag_weight_kg=45.0))

        _commit(service, admin, "processing", PROCESSING_CSV)

        main_id = locations.find_location_by_code(TENANT_ID, "MAIN").id
        north_id = locations.find_location_by_code(TENANT_ID, "NORTH").id
        assert recalculator.processing_calls == [
            (TENANT_ID, main_id, "Arabica", 45.0),
            (TENANT_ID, north_id, "Robusta", 45.0),
        ]

    def test_validate_never_recomputes(self, service, admin, recalculator) -> None:
        _validate(service, admin, "transactions", "date,item,qty\n2024-02-01,Urea,10\n")
        assert recalculator.inventory_calls == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class _CrashingRecalculator(RecordingRecalculator):
    def recalculate_inventory(self, tenant_id: str, item_type: str, location_id: str | None) -> None:
        raise RuntimeError("recompute backend unreachable")


class TestFailures:
    def test_mid_commit_failure_marks_job_failed_with_partial_count(
        self, make_service, admin, records, ledger
    ) -> None:
        service = make_service(settings=ImportSettings(chunk_size=2))
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        records.fail_on_group = 2

        with pytest.raises(ImportWriteError) as excinfo:
            _commit(service, admin, "rainfall", token=token)

        assert excinfo.value.imported == 2
        assert excinfo.value.to_dict()["imported"] == 2
        assert len(records.rows("rainfall_records")) == 2

        job = ledger.jobs[token]
        assert job.status == JobStatus.FAILED.value
        assert job.imported_count == 2
        assert "failure_reason" in job.job_metadata

    def test_recompute_failure_fails_the_commit(self, service, admin, recalculator, ledger) -> None:
        token = _validate(service, admin, "transactions", "date,item,qty\n2024-02-01,Urea,10\n").validation_token
        recalculator.fail_inventory = True

        with pytest.raises(ImportWriteError) as excinfo:
            _commit(service, admin, "transactions", token=token)

        assert excinfo.value.imported == 1
        assert ledger.jobs[token].status == JobStatus.FAILED.value

    def test_unexpected_recompute_error_consumes_the_token(
        self, make_service, admin, records, ledger
    ) -> None:
        service = make_service(inventory=_CrashingRecalculator())
        token = _validate(service, admin, "transactions", "date,item,qty\n2024-02-01,Urea,10\n").validation_token

        with pytest.raises(ImportWriteError) as excinfo:
            _commit(service, admin, "transactions", token=token)

        assert excinfo.value.imported == 1
        assert "recompute backend unreachable" in excinfo.value.message
        assert ledger.jobs[token].status == JobStatus.FAILED.value
        assert ledger.jobs[token].job_metadata["failure_reason"] == excinfo.value.message

        with pytest.raises(ValidationTokenNotReadyError):
            _commit(service, admin, "transactions", token=token)
        assert len(records.rows("transaction_history")) == 1

    def test_ledger_error_while_failing_keeps_write_error(
        self, make_service, admin, records, ledger, monkeypatch
    ) -> None:
        service = make_service(settings=ImportSettings(chunk_size=2))
        token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token
        records.fail_on_group = 2

        def _broken_mark_failed(job, **kwargs):
            raise LedgerPersistenceError("Failed to update import job.")

        monkeypatch.setattr(ledger, "mark_failed", _broken_mark_failed)

        with pytest.raises(ImportWriteError) as excinfo:
            _commit(service, admin, "rainfall", token=token)

        assert excinfo.value.imported == 2


# ---------------------------------------------------------------------------
# Ledger unavailable
# ---------------------------------------------------------------------------


class TestLedgerUnavailable:
    def test_validate_still_reports_rows(self, service, admin, ledger) -> None:
        ledger.available = False

        outcome = _validate(service, admin, "processing", PROCESSING_CSV)

        assert outcome.valid
        assert outcome.validation_token is None
        assert outcome.ledger_available is False

    def test_token_commit_is_unavailable(self, service, admin, ledger) -> None:
        ledger.available = False

        with pytest.raises(ImportLedgerUnavailableError) as excinfo:
            _commit(service, admin, "processing", token=str(uuid.uuid4()))
        assert excinfo.value.status_code == 503

    def test_direct_commit_still_works(self, service, admin, ledger, records) -> None:
        ledger.available = False

        assert _commit(service, admin, "rainfall", RAINFALL_CSV).imported == 5


# ---------------------------------------------------------------------------
# Job lookup
# ---------------------------------------------------------------------------


def test_get_job_is_tenant_scoped(service, admin) -> None:
    token = _validate(service, admin, "rainfall", RAINFALL_CSV).validation_token

    assert str(service.get_job(admin, token).id) == token
    with pytest.raises(ValidationTokenNotFoundError):
        service.get_job(Principal(username="asha", role="admin", tenant_id="tenant-b"), token)

"""
tests/test_batch_writer.py

Chunked writes: flush boundaries, immediate ops and the imported count
after a failed chunk.
"""

from __future__ import annotations

import pytest

from app.domain.bulk_import import RowPlan, WriteOp
from app.services.batch_writer import BatchWriter
from db.repositories.errors import RecordWriteError
from tests.fakes import FakeRecordStore


def _row(n: int) -> RowPlan:
    return RowPlan(batched=WriteOp(table="rainfall_records", values={"n": n}))


@pytest.fixture()
def store() -> FakeRecordStore:
    return FakeRecordStore()


def test_flushes_every_full_chunk(store: FakeRecordStore) -> None:
    writer = BatchWriter(store, chunk_size=2)
    for n in range(5):
        writer.submit(_row(n))

    assert store.group_sizes == [2, 2]
    assert writer.pending == 1
    assert writer.imported == 4

    assert writer.flush() == 1
    assert store.group_sizes == [2, 2, 1]
    assert writer.imported == 5
    assert writer.flushes == 3


def test_flush_with_empty_buffer_is_noop(store: FakeRecordStore) -> None:
    writer = BatchWriter(store, chunk_size=10)

    assert writer.flush() == 0
    assert store.group_sizes == []


def test_chunk_size_below_one_writes_row_by_row(store: FakeRecordStore) -> None:
    writer = BatchWriter(store, chunk_size=0)
    writer.submit(_row(1))
    writer.submit(_row(2))

    assert store.group_sizes == [1, 1]


def test_immediate_ops_run_before_the_batched_op(store: FakeRecordStore) -> None:
    unit = WriteOp(table="current_inventory", values={"item_type": "Urea"})
    writer = BatchWriter(store, chunk_size=10)
    writer.submit(
        RowPlan(
            batched=WriteOp(table="transaction_history", values={"item_type": "Urea"}),
            immediate=(unit,),
        )
    )

    assert store.single_writes == [unit]
    assert store.rows("transaction_history") == []
    writer.flush()
    assert store.rows("transaction_history") == [{"item_type": "Urea"}]
    assert writer.imported == 1


def test_plan_without_batched_op_counts_immediately(store: FakeRecordStore) -> None:
    writer = BatchWriter(store, chunk_size=10)
    writer.submit(RowPlan(immediate=(WriteOp(table="current_inventory", values={"item_type": "Urea"}),)))

    assert writer.imported == 1
    assert writer.pending == 0


def test_failed_chunk_keeps_count_of_earlier_chunks(store: FakeRecordStore) -> None:
    store.fail_on_group = 2
    writer = BatchWriter(store, chunk_size=3)

    with pytest.raises(RecordWriteError):
        for n in range(7):
            writer.submit(_row(n))

    assert writer.imported == 3
    assert len(store.rows("rainfall_records")) == 3

"""
app/services/batch_writer.py

Chunked writer for constructed import rows.

Batched writes are buffered and flushed as one grouped write per chunk.
Each flush commits on its own, so a failure part-way through an import
leaves earlier chunks in place; ``imported`` always equals the number of
rows that were durably written.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from app.domain.bulk_import import RowPlan, WriteOp

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    def execute_group(self, ops: Sequence[WriteOp]) -> None:
        """Run ``ops`` in one transaction and commit it."""
        ...

    def execute(self, op: WriteOp) -> None:
        """Run and commit a single write."""
        ...


class BatchWriter:
    def __init__(self, store: RecordStore, *, chunk_size: int) -> None:
        self._store = store
        self._chunk_size = max(1, chunk_size)
        self._buffer: list[WriteOp] = []
        self.imported = 0
        self.flushes = 0

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def submit(self, plan: RowPlan) -> None:
        """
        Apply one row's plan.

        Immediate writes run first, in order. The batched write, if any, is
        buffered; otherwise the row counts as imported right away.
        """

        for op in plan.immediate:
            self._store.execute(op)

        if plan.batched is None:
            self.imported += 1
            return

        self._buffer.append(plan.batched)
        if len(self._buffer) >= self._chunk_size:
            self.flush()

    def flush(self) -> int:
        if not self._buffer:
            return 0

        chunk = list(self._buffer)
        self._store.execute_group(chunk)
        self._buffer.clear()
        self.imported += len(chunk)
        self.flushes += 1
        logger.debug("Flushed import chunk size=%d imported=%d", len(chunk), self.imported)
        return len(chunk)

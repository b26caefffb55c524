"""
app/services/recompute_trigger.py

Collects the aggregate keys touched by an import and recomputes each one
once, after every write of the import has landed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from app.domain.bulk_import import AggregateKey, ProcessingKey, StockKey

logger = logging.getLogger(__name__)


class InventoryRecalculator(Protocol):
    def recalculate_inventory(self, tenant_id: str, item_type: str, location_id: str | None) -> None:
        ...


class ProcessingTotalsRecalculator(Protocol):
    def recompute_processing_totals(
        self,
        tenant_id: str,
        location_id: str,
        coffee_type: str,
        bag_weight_kg: float,
    ) -> None:
        ...


class RecomputeTrigger:
    """
    Ordered, de-duplicated set of aggregate keys for one import.
    """

    def __init__(
        self,
        *,
        tenant_id: str,
        bag_weight_kg: float,
        inventory: InventoryRecalculator,
        processing: ProcessingTotalsRecalculator,
    ) -> None:
        self._tenant_id = tenant_id
        self._bag_weight_kg = bag_weight_kg
        self._inventory = inventory
        self._processing = processing
        # dict keeps first-touch order.
        self._keys: dict[AggregateKey, None] = {}

    def touch(self, keys: Iterable[AggregateKey]) -> None:
        for key in keys:
            self._keys.setdefault(key, None)

    @property
    def keys(self) -> list[AggregateKey]:
        return list(self._keys)

    def run(self) -> int:
        """
        Recompute every touched key once. Returns the number of keys run.
        """

        for key in self._keys:
            if isinstance(key, StockKey):
                self._inventory.recalculate_inventory(self._tenant_id, key.item_type, key.location_id)
            elif isinstance(key, ProcessingKey):
                self._processing.recompute_processing_totals(
                    self._tenant_id,
                    key.location_id,
                    key.coffee_type,
                    self._bag_weight_kg,
                )
            else:
                raise TypeError(f"Unsupported aggregate key: {key!r}")

        count = len(self._keys)
        if count:
            logger.info("Recomputed %d aggregate key(s) tenant_id=%s", count, self._tenant_id)
        self._keys.clear()
        return count

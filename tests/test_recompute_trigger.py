"""
tests/test_recompute_trigger.py

Aggregate keys are recomputed once each, in first-touch order.
"""

from __future__ import annotations

import pytest

from app.domain.bulk_import import ProcessingKey, StockKey
from app.services.recompute_trigger import RecomputeTrigger
from tests.fakes import TENANT_ID, RecordingRecalculator


@pytest.fixture()
def recalculator() -> RecordingRecalculator:
    return RecordingRecalculator()


@pytest.fixture()
def trigger(recalculator: RecordingRecalculator) -> RecomputeTrigger:
    return RecomputeTrigger(
        tenant_id=TENANT_ID,
        bag_weight_kg=60.0,
        inventory=recalculator,
        processing=recalculator,
    )


def test_duplicate_keys_run_once(trigger: RecomputeTrigger, recalculator: RecordingRecalculator) -> None:
    trigger.touch([StockKey("Urea", "loc-1"), StockKey("Urea", "loc-1")])
    trigger.touch([StockKey("Urea", None), StockKey("Urea", "loc-1")])

    assert trigger.run() == 2
    assert recalculator.inventory_calls == [
        (TENANT_ID, "Urea", "loc-1"),
        (TENANT_ID, "Urea", None),
    ]


def test_processing_keys_carry_bag_weight(
    trigger: RecomputeTrigger, recalculator: RecordingRecalculator
) -> None:
    trigger.touch([ProcessingKey("loc-1", "Arabica"), ProcessingKey("loc-1", "Robusta")])
    trigger.run()

    assert recalculator.processing_calls == [
        (TENANT_ID, "loc-1", "Arabica", 60.0),
        (TENANT_ID, "loc-1", "Robusta", 60.0),
    ]


def test_run_clears_keys(trigger: RecomputeTrigger, recalculator: RecordingRecalculator) -> None:
    trigger.touch([StockKey("Urea", None)])
    trigger.run()

    assert trigger.keys == []
    assert trigger.run() == 0
    assert len(recalculator.inventory_calls) == 1


def test_unknown_key_type_is_rejected(trigger: RecomputeTrigger) -> None:
    trigger.touch(["not-a-key"])  # type: ignore[list-item]

    with pytest.raises(TypeError):
        trigger.run()

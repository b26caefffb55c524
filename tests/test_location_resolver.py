"""
tests/test_location_resolver.py

Request-scoped location resolution: lookup order, creation, code
derivation and memoization.
"""

from __future__ import annotations

import pytest

from app.services.location_resolver import LocationResolver, derive_location_code, is_uuid
from tests.fakes import TENANT_ID, FakeLocationStore


@pytest.fixture()
def store() -> FakeLocationStore:
    store = FakeLocationStore()
    store.add(TENANT_ID, "Main Estate", "MAIN")
    store.add("tenant-b", "Hill Side", "HILL")
    return store


@pytest.fixture()
def resolver(store: FakeLocationStore) -> LocationResolver:
    return LocationResolver(store, TENANT_ID, cache={})


class TestDeriveLocationCode:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("north block 7", "NORTH"),
            ("Hill-Side", "HILLSIDE"),
            ("  riverbank estate  ", "RIVERBAN"),
            ("***", "LOC"),
            ("", "LOC"),
        ],
    )
    def test_codes(self, label: str, expected: str) -> None:
        assert derive_location_code(label) == expected


def test_is_uuid() -> None:
    assert is_uuid("3f2b8c1e-6a4d-4f1b-9c2e-1a2b3c4d5e6f")
    assert not is_uuid("MAIN")
    assert not is_uuid("3f2b8c1e6a4d4f1b9c2e1a2b3c4d5e6f")


class TestResolve:
    def test_blank_label_resolves_to_none(self, resolver: LocationResolver) -> None:
        assert resolver.resolve("   ") is None

    def test_uuid_of_tenant_location(self, resolver: LocationResolver, store: FakeLocationStore) -> None:
        main = store.find_location_by_code(TENANT_ID, "MAIN")
        assert resolver.resolve(main.id) == main.id

    def test_match_by_name_or_code_is_case_insensitive(
        self, resolver: LocationResolver, store: FakeLocationStore
    ) -> None:
        main = store.find_location_by_code(TENANT_ID, "MAIN")
        assert resolver.resolve("MAIN ESTATE") == main.id
        assert resolver.resolve("main") == main.id
        assert store.created == []

    def test_first_token_matches_code(self, resolver: LocationResolver, store: FakeLocationStore) -> None:
        main = store.find_location_by_code(TENANT_ID, "MAIN")
        assert resolver.resolve("Main Gate Block") == main.id

    def test_unknown_label_creates_one_location(
        self, resolver: LocationResolver, store: FakeLocationStore
    ) -> None:
        first = resolver.resolve("Lakeview")
        second = resolver.resolve("lakeview")

        assert first is not None
        assert first == second
        assert [info.code for info in store.created] == ["LAKEVIEW"]
        assert [info.name for info in resolver.created] == ["Lakeview"]

    def test_other_tenants_locations_are_invisible(
        self, resolver: LocationResolver, store: FakeLocationStore
    ) -> None:
        other = store.find_location_by_code("tenant-b", "HILL")

        assert resolver.resolve("Hill Side") != other.id
        # A foreign uuid is treated as a label and becomes a new location.
        assert resolver.resolve(other.id) != other.id

    def test_code_conflict_falls_back_to_existing_row(
        self, resolver: LocationResolver, store: FakeLocationStore
    ) -> None:
        store.racing_codes["RIVER"] = "River Camp"

        resolved = resolver.resolve("river side")

        existing = store.find_location_by_code(TENANT_ID, "RIVER")
        assert resolved == existing.id
        assert resolver.created == []

    def test_results_are_memoized(self, resolver: LocationResolver, store: FakeLocationStore) -> None:
        resolver.resolve("Main Estate")
        lookups = store.lookups

        resolver.resolve("main estate")
        resolver.resolve(" Main Estate ")

        assert store.lookups == lookups

    def test_separate_resolvers_do_not_share_cache(self, store: FakeLocationStore) -> None:
        LocationResolver(store, TENANT_ID, cache={}).resolve("Main Estate")
        lookups = store.lookups

        LocationResolver(store, TENANT_ID, cache={}).resolve("Main Estate")

        assert store.lookups == lookups + 1


class TestLabelFor:
    def test_prefers_name_then_fallback(self, resolver: LocationResolver, store: FakeLocationStore) -> None:
        main = store.find_location_by_code(TENANT_ID, "MAIN")
        assert resolver.label_for(main.id, "raw") == "Main Estate"
        assert resolver.label_for("00000000-0000-4000-8000-000000000000", "raw") == "raw"

    def test_code_used_when_name_is_blank(self, resolver: LocationResolver, store: FakeLocationStore) -> None:
        info = store.add(TENANT_ID, "", "SOUTH")
        assert resolver.label_for(info.id, "raw") == "SOUTH"

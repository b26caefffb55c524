"""
app/services/location_resolver.py

Resolves free-text location references in import rows to location ids,
creating a location the first time an unknown label is seen.

A resolver instance lives for one import run. Its cache is a plain dict
owned by the caller, so concurrent imports never share entries.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from app.domain.bulk_import import LocationInfo
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)

DEFAULT_LOCATION_CODE = "LOC"
MAX_LOCATION_CODE_LENGTH = 8

LocationCache = dict[str, LocationInfo]


class LocationStore(Protocol):
    def get_location(self, tenant_id: str, location_id: str) -> LocationInfo | None:
        ...

    def match_location(self, tenant_id: str, label: str, token: str) -> LocationInfo | None:
        """Match lower-cased ``label`` or ``token`` against name or code."""
        ...

    def create_location(self, tenant_id: str, name: str, code: str) -> LocationInfo | None:
        """Insert a location; None when (tenant, code) already exists."""
        ...

    def find_location_by_code(self, tenant_id: str, code: str) -> LocationInfo | None:
        """Case-insensitive lookup by code."""
        ...


def is_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value))


def derive_location_code(label: str) -> str:
    """
    Short location code from a free-text label.

    First whitespace-delimited token, alphanumerics only, upper-cased and
    cut to 8 characters. ``"north block 7"`` becomes ``"NORTH"``.
    """

    stripped = label.strip()
    parts = stripped.split()
    token = parts[0] if parts else stripped
    cleaned = _NON_ALNUM.sub("", token).upper()
    return cleaned[:MAX_LOCATION_CODE_LENGTH] or DEFAULT_LOCATION_CODE


class LocationResolver:
    """
    Request-scoped location resolution with memoization.
    """

    def __init__(self, store: LocationStore, tenant_id: str, cache: LocationCache) -> None:
        self._store = store
        self._tenant_id = tenant_id
        self._cache = cache
        self.created: list[LocationInfo] = []

    def resolve(self, raw_label: str) -> str | None:
        info = self.resolve_info(raw_label)
        return info.id if info else None

    def resolve_info(self, raw_label: str) -> LocationInfo | None:
        raw = (raw_label or "").strip()
        if not raw:
            return None

        if is_uuid(raw):
            cached = self._cache.get(raw)
            if cached:
                return cached
            found = self._store.get_location(self._tenant_id, raw)
            if found:
                return self._remember(raw, found)

        key = raw.lower()
        cached = self._cache.get(key)
        if cached:
            return cached

        token = key.split(" ")[0] or key
        matched = self._store.match_location(self._tenant_id, key, token)
        if matched:
            return self._remember(key, matched)

        code = derive_location_code(raw)
        created = self._store.create_location(self._tenant_id, raw, code)
        if created:
            self.created.append(created)
            log_event(
                logger,
                logging.INFO,
                "import_location_created",
                tenant_id=self._tenant_id,
                location_id=created.id,
                code=created.code,
                label=raw,
            )
            return self._remember(key, created)

        # Another writer holds this code; use its row.
        existing = self._store.find_location_by_code(self._tenant_id, code)
        if existing:
            return self._remember(key, existing)

        return None

    def label_for(self, location_id: str, fallback: str) -> str:
        """
        Display label (name, else code) for a resolved location id.
        """

        info = self._cache.get(location_id)
        if info is None:
            info = self._store.get_location(self._tenant_id, location_id)
            if info is not None:
                self._cache[location_id] = info
        if info is None:
            return fallback
        return info.display_label or fallback

    def _remember(self, key: str, info: LocationInfo) -> LocationInfo:
        self._cache[key] = info
        self._cache[info.id] = info
        return info

"""
app/validators/field_resolver.py

Alias-based field lookup and value normalization for import rows.

Every function here is total: bad input yields None (or the caller's
fallback) so the row validator can report a precise per-row message.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Mapping, Sequence

from app.mappers.csv_records import normalize_header

LOCATION_ALIASES: tuple[str, ...] = (
    "location_id",
    "location",
    "location_code",
    "location_name",
    "estate",
)
NOTES_ALIASES: tuple[str, ...] = ("notes", "note")
COFFEE_TYPE_ALIASES: tuple[str, ...] = ("coffee_type", "variety", "type")
BAG_TYPE_ALIASES: tuple[str, ...] = ("bag_type", "bag", "bagtype")
LOT_ALIASES: tuple[str, ...] = ("lot_id", "lot")
ITEM_TYPE_ALIASES: tuple[str, ...] = ("item_type", "item", "item_name")
QUANTITY_ALIASES: tuple[str, ...] = ("quantity", "qty")
PRICE_ALIASES: tuple[str, ...] = ("price", "unit_price", "price_per_unit")
ACTIVITY_CODE_ALIASES: tuple[str, ...] = ("code", "activity_code")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_FIRST_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_YEAR_FIRST_SLASH_DATE = re.compile(r"^(\d{4})/(\d{2})/(\d{2})$")

FALLBACK_DATE_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y.%m.%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)


def get_field(row: Mapping[str, str], aliases: Sequence[str]) -> str:
    """
    Return the first non-blank value among ``aliases``, else "".
    """

    for alias in aliases:
        value = row.get(normalize_header(alias))
        if value is not None and str(value).strip() != "":
            return str(value)
    return ""


def _calendar_date(year: str, month: str, day: str) -> str | None:
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def parse_date(value: str | None) -> str | None:
    """
    Normalize a date to ``YYYY-MM-DD``; None when absent or unparseable.

    Accepts ISO, DD/MM/YYYY and YYYY/MM/DD first, then a general parse.
    """

    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None

    if _ISO_DATE.match(raw):
        parsed = _calendar_date(raw[0:4], raw[5:7], raw[8:10])
        if parsed:
            return parsed

    match = _DAY_FIRST_DATE.match(raw)
    if match:
        day, month, year = match.groups()
        parsed = _calendar_date(year, month, day)
        if parsed:
            return parsed

    match = _YEAR_FIRST_SLASH_DATE.match(raw)
    if match:
        year, month, day = match.groups()
        parsed = _calendar_date(year, month, day)
        if parsed:
            return parsed

    normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(normalized).date().isoformat()
    except ValueError:
        pass

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date().isoformat()
        except ValueError:
            continue

    return None


def parse_number(value: str | None, fallback: float | None = None) -> float | None:
    """
    Parse a number, tolerating thousands separators; ``fallback`` otherwise.
    """

    if value is None:
        return fallback
    cleaned = str(value).replace(",", "").strip()
    if not cleaned:
        return fallback
    try:
        parsed = float(cleaned)
    except ValueError:
        return fallback
    if not math.isfinite(parsed):
        return fallback
    return parsed


def normalize_coffee_type(value: str | None) -> str:
    raw = str(value or "").strip()
    if not raw:
        return ""
    lowered = raw.lower()
    if "arabica" in lowered:
        return "Arabica"
    if "robusta" in lowered:
        return "Robusta"
    return raw[0].upper() + raw[1:]


def normalize_bag_type(value: str | None) -> str:
    raw = str(value or "").strip().lower()
    if not raw:
        return ""
    if "cherry" in raw:
        return "Dry Cherry"
    return "Dry Parchment"


def normalize_transaction_type(value: str | None) -> str:
    raw = str(value or "").strip().lower()
    if "restock" in raw:
        return "restock"
    return "deplete"

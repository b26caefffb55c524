"""
app/mappers/csv_records.py

Turns raw CSV text into header-normalized records for the import pipeline.
"""

from __future__ import annotations

import csv
import hashlib
import io
import re
from dataclasses import dataclass

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# First data row sits on spreadsheet line 2, under the header.
FIRST_DATA_ROW_NUMBER = 2


def normalize_header(header: str) -> str:
    """
    Normalize a column name to snake_case for alias lookup.

    ``" Process Date "`` and ``"process-date"`` both become ``process_date``.
    """

    cleaned = header.lstrip("\ufeff").strip().lower()
    return _NON_ALNUM.sub("_", cleaned).strip("_")


def content_fingerprint(text: str) -> str:
    """
    sha256 hex digest of the submitted CSV text.
    """

    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ParsedCSV:
    headers: tuple[str, ...]
    records: list[dict[str, str]]

    def numbered(self) -> list[tuple[int, dict[str, str]]]:
        """
        Records paired with the row number reported in errors.
        """

        return [
            (index + FIRST_DATA_ROW_NUMBER, record)
            for index, record in enumerate(self.records)
        ]


class CSVFormatError(ValueError):
    """
    Raised when the submitted text cannot be read as CSV.
    """


def parse_csv_records(text: str) -> ParsedCSV:
    """
    Parse CSV text into records keyed by normalized header.

    Fully blank lines are dropped, cells are trimmed, and missing trailing
    cells read as empty strings.
    """

    try:
        rows = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as exc:
        raise CSVFormatError(f"Invalid CSV format: {exc}") from exc

    if not rows:
        return ParsedCSV(headers=(), records=[])

    headers = tuple(normalize_header(header) for header in rows[0])
    records: list[dict[str, str]] = []
    for row in rows[1:]:
        if not any(cell.strip() for cell in row):
            continue
        record: dict[str, str] = {}
        for index, header in enumerate(headers):
            if not header:
                continue
            record[header] = row[index].strip() if index < len(row) else ""
        records.append(record)

    return ParsedCSV(headers=headers, records=records)

"""
app/mappers package marker.
"""

from app.mappers.csv_records import (
    FIRST_DATA_ROW_NUMBER,
    CSVFormatError,
    ParsedCSV,
    content_fingerprint,
    normalize_header,
    parse_csv_records,
)

__all__ = [
    "CSVFormatError",
    "FIRST_DATA_ROW_NUMBER",
    "ParsedCSV",
    "content_fingerprint",
    "normalize_header",
    "parse_csv_records",
]

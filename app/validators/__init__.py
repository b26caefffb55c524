"""
app/validators package marker.
"""

from app.validators.field_resolver import (
    get_field,
    normalize_bag_type,
    normalize_coffee_type,
    normalize_transaction_type,
    parse_date,
    parse_number,
)

__all__ = [
    "get_field",
    "normalize_bag_type",
    "normalize_coffee_type",
    "normalize_transaction_type",
    "parse_date",
    "parse_number",
]

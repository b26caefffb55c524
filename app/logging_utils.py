"""
Structured logging helpers for import workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from app.domain.bulk_import import RowError


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def log_row_errors(
    logger: logging.Logger,
    dataset: str,
    errors: Iterable[RowError],
    *,
    phase: str,
) -> None:
    """
    Emit one WARNING event per rejected row.
    """

    for error in errors:
        log_event(
            logger,
            logging.WARNING,
            "import_row_rejected",
            dataset=dataset,
            phase=phase,
            row=error.row,
            message=error.message,
        )

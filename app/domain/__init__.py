"""
app/domain package marker.
"""

from app.domain.bulk_import import (
    CommitOutcome,
    Dataset,
    ImportMode,
    LocationInfo,
    Principal,
    RowError,
    ValidateOutcome,
    WriteOp,
)
from app.domain.job_state import InvalidJobTransitionError, JobEvent, JobStatus, transition

__all__ = [
    "CommitOutcome",
    "Dataset",
    "ImportMode",
    "InvalidJobTransitionError",
    "JobEvent",
    "JobStatus",
    "LocationInfo",
    "Principal",
    "RowError",
    "ValidateOutcome",
    "WriteOp",
    "transition",
]

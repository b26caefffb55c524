"""
app/domain/job_state.py

Import job lifecycle as an explicit state machine.

    validating --validation_passed--> validated
    validating --validation_failed--> invalid
    validated  --commit_succeeded---> committed
    validated  --commit_failed------> failed
    validated  --expired------------> expired

``transition`` is pure so it can be exercised without a database.
"""

from __future__ import annotations

from enum import Enum


class JobStatus(str, Enum):
    VALIDATING = "validating"
    VALIDATED = "validated"
    INVALID = "invalid"
    COMMITTED = "committed"
    FAILED = "failed"
    EXPIRED = "expired"


class JobEvent(str, Enum):
    VALIDATION_PASSED = "validation_passed"
    VALIDATION_FAILED = "validation_failed"
    COMMIT_SUCCEEDED = "commit_succeeded"
    COMMIT_FAILED = "commit_failed"
    EXPIRED = "expired"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.INVALID, JobStatus.COMMITTED, JobStatus.FAILED, JobStatus.EXPIRED}
)

_TRANSITIONS: dict[tuple[JobStatus, JobEvent], JobStatus] = {
    (JobStatus.VALIDATING, JobEvent.VALIDATION_PASSED): JobStatus.VALIDATED,
    (JobStatus.VALIDATING, JobEvent.VALIDATION_FAILED): JobStatus.INVALID,
    (JobStatus.VALIDATED, JobEvent.COMMIT_SUCCEEDED): JobStatus.COMMITTED,
    (JobStatus.VALIDATED, JobEvent.COMMIT_FAILED): JobStatus.FAILED,
    (JobStatus.VALIDATED, JobEvent.EXPIRED): JobStatus.EXPIRED,
}


class InvalidJobTransitionError(ValueError):
    """
    Raised when an event is not allowed from the job's current status.
    """

    def __init__(self, status: JobStatus, event: JobEvent) -> None:
        super().__init__(f"Cannot apply {event.value} to an import job in status {status.value}.")
        self.status = status
        self.event = event


def coerce_status(value: str | JobStatus) -> JobStatus:
    if isinstance(value, JobStatus):
        return value
    return JobStatus(value)


def transition(status: str | JobStatus, event: JobEvent) -> JobStatus:
    """
    Return the status reached by applying ``event`` to ``status``.
    """

    current = coerce_status(status)
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidJobTransitionError(current, event) from None


def is_terminal(status: str | JobStatus) -> bool:
    return coerce_status(status) in TERMINAL_STATUSES

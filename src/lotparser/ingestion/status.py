"""JobStatus state machine for the import job lifecycle.

State flow:
PENDING -> PROCESSING -> COMPLETED or FAILED (or DEAD once the retries are used up)
FAILED can go back to PENDING through an explicit retry
PENDING can fail directly when cancelled before it is claimed
"""

from ..core.errors import InvalidTransition
from ..core.models import JobStatus

# State transition rules
ALLOWED_TRANSITIONS: dict[JobStatus, list[JobStatus]] = {
    JobStatus.PENDING: [JobStatus.PROCESSING, JobStatus.FAILED],
    JobStatus.PROCESSING: [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.DEAD],
    JobStatus.COMPLETED: [],  # Terminal success state
    JobStatus.FAILED: [JobStatus.PENDING],  # Retry
    JobStatus.DEAD: [],  # Terminal, needs manual intervention
}

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.DEAD})


def can_transition(from_status: JobStatus, to_status: JobStatus) -> bool:
    """Validate if status transition is allowed

    Example:
        >>> can_transition(JobStatus.PENDING, JobStatus.PROCESSING)
        True
        >>> can_transition(JobStatus.COMPLETED, JobStatus.PENDING)
        False
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def check_transition(from_status: JobStatus, to_status: JobStatus) -> None:
    """Raise InvalidTransition unless the change is allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransition(
            f"Cannot move job from {from_status.value} to {to_status.value}"
        )


def get_allowed_transitions(from_status: JobStatus) -> list[JobStatus]:
    """Get list of allowed transitions from current status"""
    return ALLOWED_TRANSITIONS.get(from_status, [])

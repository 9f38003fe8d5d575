"""
Ride state machine.

    SEARCHING --claim--> IN_PROGRESS --complete--> COMPLETED
    SEARCHING --cancel--> CANCELED

COMPLETED and CANCELED are terminal. A claimed ride cannot be canceled.
"""

from enum import Enum

from rides.models import RideStatus
from .exceptions import RideConflictError


class RideEvent(str, Enum):
    CLAIM = "claim"
    COMPLETE = "complete"
    CANCEL = "cancel"


TRANSITIONS = {
    (RideStatus.SEARCHING, RideEvent.CLAIM): RideStatus.IN_PROGRESS,
    (RideStatus.IN_PROGRESS, RideEvent.COMPLETE): RideStatus.COMPLETED,
    (RideStatus.SEARCHING, RideEvent.CANCEL): RideStatus.CANCELED,
}

TERMINAL_STATUSES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELED})

_CONFLICT_MESSAGES = {
    RideEvent.CLAIM: "Ride already taken",
    RideEvent.COMPLETE: "Ride is not in progress",
    RideEvent.CANCEL: "Ride can no longer be canceled",
}


def source_status(event: RideEvent) -> RideStatus:
    """Return the only status from which ``event`` may be applied."""
    for (current, candidate), _ in TRANSITIONS.items():
        if candidate == event:
            return current
    raise ValueError(f"Unknown ride event: {event!r}")


def can_apply(current, event: RideEvent) -> bool:
    return (RideStatus(current), RideEvent(event)) in TRANSITIONS


def next_status(current, event: RideEvent) -> RideStatus:
    """
    Validate ``event`` against ``current`` and return the resulting status.

    Raises:
        RideConflictError: if the guard fails
    """
    event = RideEvent(event)
    try:
        return TRANSITIONS[(RideStatus(current), event)]
    except KeyError:
        raise RideConflictError(
            f"{_CONFLICT_MESSAGES[event]} (status is {current})",
            current_status=current,
        ) from None


def is_terminal(status) -> bool:
    return RideStatus(status) in TERMINAL_STATUSES

"""
Booking state machine.

The transition table is the single place that decides which status edges
exist. Stores and services ask it before issuing a conditional update.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import FrozenSet, Mapping

from servicehub.core.enums import BookingStatus
from servicehub.core.exceptions import BusinessRuleException

BOOKING_TRANSITIONS: Mapping[BookingStatus, FrozenSet[BookingStatus]] = MappingProxyType(
    {
        BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED, BookingStatus.CANCELLED}),
        BookingStatus.ACCEPTED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
        BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
        BookingStatus.COMPLETED: frozenset(),
        BookingStatus.CANCELLED: frozenset(),
    }
)

# Every status must have an entry, including the absorbing ones.
assert set(BOOKING_TRANSITIONS) == set(BookingStatus)

CANCELLABLE_STATUSES: FrozenSet[BookingStatus] = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if BookingStatus.CANCELLED in targets
)


class InvalidTransitionException(BusinessRuleException):
    """Raised when code asks for a status edge the state machine does not have."""

    def __init__(self, current: BookingStatus, target: BookingStatus):
        super().__init__(
            message=f"Booking cannot move from {current.value} to {target.value}",
            code="INVALID_BOOKING_TRANSITION",
            details={"current_status": current.value, "target_status": target.value},
        )


def can_transition(current: BookingStatus | str, target: BookingStatus | str) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def ensure_transition(current: BookingStatus | str, target: BookingStatus | str) -> None:
    """Raise InvalidTransitionException unless ``current -> target`` is an edge."""
    current_status = BookingStatus(current)
    target_status = BookingStatus(target)
    if target_status not in BOOKING_TRANSITIONS[current_status]:
        raise InvalidTransitionException(current_status, target_status)

import pytest

from servicehub.core.enums import BookingStatus
from servicehub.domain.booking_state import (
    BOOKING_TRANSITIONS,
    CANCELLABLE_STATUSES,
    InvalidTransitionException,
    can_transition,
    ensure_transition,
)

ALLOWED = {
    (BookingStatus.PENDING, BookingStatus.ACCEPTED),
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS),
    (BookingStatus.ACCEPTED, BookingStatus.CANCELLED),
    (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED),
    (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
}


@pytest.mark.parametrize("current", list(BookingStatus))
@pytest.mark.parametrize("target", list(BookingStatus))
def test_only_listed_edges_exist(current, target):
    assert can_transition(current, target) is ((current, target) in ALLOWED)


def test_pending_never_jumps_to_completed():
    with pytest.raises(InvalidTransitionException) as exc_info:
        ensure_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)
    assert exc_info.value.code == "INVALID_BOOKING_TRANSITION"
    assert exc_info.value.details == {"current_status": "pending", "target_status": "completed"}


@pytest.mark.parametrize("terminal", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_terminal_statuses_are_absorbing(terminal):
    assert BOOKING_TRANSITIONS[terminal] == frozenset()
    assert terminal.is_terminal


def test_cancellable_statuses():
    assert CANCELLABLE_STATUSES == {
        BookingStatus.PENDING,
        BookingStatus.ACCEPTED,
        BookingStatus.IN_PROGRESS,
    }


def test_accepts_raw_string_values():
    assert can_transition("accepted", "in_progress")
    ensure_transition("in_progress", "cancelled")

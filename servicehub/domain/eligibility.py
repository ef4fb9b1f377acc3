"""
Eligibility gates for booking actions.

Every function here is pure: it looks only at the snapshot and the acting
identity it is given and returns a ``Verdict``. A verdict is truthy when
the action is allowed; otherwise it names why not. Services call
``verdict.raise_if_denied()`` to turn a denial into the matching domain
exception before touching the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from servicehub.core.enums import BookingStatus, PaymentPlan
from servicehub.core.exceptions import ForbiddenException, StateConflictException

from .booking_state import CANCELLABLE_STATUSES
from .installments import next_payment_stage
from .snapshot import BookingSnapshot

PAYABLE_STATUSES = frozenset({BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS})
REVIEWABLE_STATUSES = frozenset({BookingStatus.COMPLETED})


class Denial(str, Enum):
    NOT_PAYER = "not_payer"
    NOT_PROVIDER = "not_provider"
    NOT_A_PARTY = "not_a_party"
    INVALID_STATUS = "invalid_status"
    PAYMENT_LOCKED = "payment_locked"
    NOTHING_DUE = "nothing_due"
    PAYMENT_OUTSTANDING = "payment_outstanding"
    ALREADY_REVIEWED = "already_reviewed"

    @property
    def is_authorization(self) -> bool:
        return self in (Denial.NOT_PAYER, Denial.NOT_PROVIDER, Denial.NOT_A_PARTY)


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    denial: Optional[Denial] = None
    reason: Optional[str] = None
    booking_id: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    def raise_if_denied(self) -> None:
        if self.allowed:
            return
        message = self.reason or "This action is not allowed for the booking"
        denial = self.denial or Denial.INVALID_STATUS
        if denial.is_authorization:
            raise ForbiddenException(
                message,
                code="NOT_AUTHORIZED",
                details={"booking_id": self.booking_id, "denial": denial.value},
            )
        raise StateConflictException(
            message,
            booking_id=self.booking_id,
            details={"denial": denial.value},
        )


def _allow(booking: BookingSnapshot) -> Verdict:
    return Verdict(True, booking_id=booking.id)


def _deny(booking: BookingSnapshot, denial: Denial, reason: str) -> Verdict:
    return Verdict(False, denial=denial, reason=reason, booking_id=booking.id)


def can_cancel(booking: BookingSnapshot, actor_id: str) -> Verdict:
    """
    Payer-side cancellation.

    Allowed while the booking is pending, accepted or in progress. A
    pending/accepted booking must not carry any payment, and a half-plan
    booking locks the moment its first installment clears.
    """
    if actor_id != booking.payer_id:
        return _deny(booking, Denial.NOT_PAYER, "Only the customer who booked can cancel it")
    if booking.status not in CANCELLABLE_STATUSES:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            f"Booking cannot be cancelled - current status: {booking.status.value}",
        )
    if booking.payment_plan is PaymentPlan.HALF and booking.first_payment_completed:
        return _deny(
            booking,
            Denial.PAYMENT_LOCKED,
            "You cannot cancel this booking after making the initial payment.",
        )
    if booking.status is not BookingStatus.IN_PROGRESS and booking.any_payment_made:
        return _deny(
            booking,
            Denial.PAYMENT_LOCKED,
            "You cannot cancel a booking that has already been paid for.",
        )
    return _allow(booking)


def can_pay(booking: BookingSnapshot, actor_id: str) -> Verdict:
    if actor_id != booking.payer_id:
        return _deny(booking, Denial.NOT_PAYER, "Only the customer who booked can pay for it")
    if booking.status not in PAYABLE_STATUSES:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            f"Booking cannot be paid - current status: {booking.status.value}",
        )
    if next_payment_stage(booking) is None:
        return _deny(booking, Denial.NOTHING_DUE, "This booking has already been paid in full")
    return _allow(booking)


def can_review(
    booking: BookingSnapshot, actor_id: str, *, has_existing_review: bool = False
) -> Verdict:
    if actor_id != booking.payer_id:
        return _deny(booking, Denial.NOT_PAYER, "Only the customer who booked can review it")
    if has_existing_review:
        return _deny(booking, Denial.ALREADY_REVIEWED, "You have already reviewed this booking")
    if booking.status not in REVIEWABLE_STATUSES:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            "Reviews can only be left once the service is completed",
        )
    return _allow(booking)


def can_report(booking: BookingSnapshot, actor_id: str) -> Verdict:
    """Either party may report; the payee must be resolved on the snapshot."""
    if actor_id == booking.payer_id:
        return _allow(booking)
    if booking.payee_id is not None and actor_id == booking.payee_id:
        return _allow(booking)
    return _deny(booking, Denial.NOT_A_PARTY, "Only the parties to a booking can report it")


def can_accept(booking: BookingSnapshot, provider_id: str) -> Verdict:
    if provider_id != booking.provider_id:
        return _deny(booking, Denial.NOT_PROVIDER, "This booking belongs to another provider")
    if booking.status is not BookingStatus.PENDING:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            f"Only pending bookings can be accepted - current status: {booking.status.value}",
        )
    return _allow(booking)


def can_reject(booking: BookingSnapshot, provider_id: str) -> Verdict:
    if provider_id != booking.provider_id:
        return _deny(booking, Denial.NOT_PROVIDER, "This booking belongs to another provider")
    if booking.status is not BookingStatus.PENDING:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            f"Only pending bookings can be rejected - current status: {booking.status.value}",
        )
    return _allow(booking)


def can_mark_done(booking: BookingSnapshot, provider_id: str) -> Verdict:
    if provider_id != booking.provider_id:
        return _deny(booking, Denial.NOT_PROVIDER, "This booking belongs to another provider")
    if booking.status is not BookingStatus.IN_PROGRESS:
        return _deny(
            booking,
            Denial.INVALID_STATUS,
            f"Only bookings in progress can be completed - current status: {booking.status.value}",
        )
    if not booking.fully_paid:
        return _deny(
            booking,
            Denial.PAYMENT_OUTSTANDING,
            "The customer has not completed payment for this booking yet",
        )
    return _allow(booking)

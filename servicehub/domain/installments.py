"""
Installment arithmetic for booking payments.

Amounts are integer minor units. For the half plan the final installment
is the remainder of the first, so the two always sum to the booking amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from servicehub.core.enums import BookingStatus, PaymentPlan, PaymentStage

from .snapshot import BookingSnapshot


@dataclass(frozen=True)
class PaymentFlags:
    first_payment_completed: bool
    final_payment_completed: bool


def first_installment(amount: int) -> int:
    return amount // 2


def final_installment(amount: int) -> int:
    return amount - amount // 2


def installment_amount(amount: int, plan: PaymentPlan | str, stage: PaymentStage | str) -> int:
    """Return the minor-unit amount due for ``stage`` of a booking priced ``amount``."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    plan = PaymentPlan(plan)
    stage = PaymentStage(stage)
    if plan is PaymentPlan.FULL_UPFRONT:
        if stage is not PaymentStage.FULL_PAYMENT:
            raise ValueError(f"{stage.value} is not a full_upfront stage")
        return amount
    if stage is PaymentStage.FIRST_PAYMENT:
        return first_installment(amount)
    if stage is PaymentStage.FINAL_PAYMENT:
        return final_installment(amount)
    raise ValueError(f"{stage.value} is not a half-plan stage")


def next_payment_stage(booking: BookingSnapshot) -> Optional[PaymentStage]:
    """Return the installment still owed, or None when the booking is fully paid."""
    if booking.payment_plan is PaymentPlan.FULL_UPFRONT:
        return None if booking.final_payment_completed else PaymentStage.FULL_PAYMENT
    if not booking.first_payment_completed:
        return PaymentStage.FIRST_PAYMENT
    if not booking.final_payment_completed:
        return PaymentStage.FINAL_PAYMENT
    return None


def flags_after(stage: PaymentStage) -> PaymentFlags:
    """Payment flags once ``stage`` has cleared."""
    if stage is PaymentStage.FIRST_PAYMENT:
        return PaymentFlags(first_payment_completed=True, final_payment_completed=False)
    return PaymentFlags(first_payment_completed=True, final_payment_completed=True)


def status_after(stage: PaymentStage, current: BookingStatus) -> BookingStatus:
    """
    Status a booking moves to once ``stage`` clears.

    The opening installment (full or first half) starts the work; the final
    half-plan installment completes the booking. Full-upfront bookings are
    completed by the provider via ``mark_done``.
    """
    if stage is PaymentStage.FINAL_PAYMENT:
        return BookingStatus.COMPLETED
    if current is BookingStatus.ACCEPTED:
        return BookingStatus.IN_PROGRESS
    return current

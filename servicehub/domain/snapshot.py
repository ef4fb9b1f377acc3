"""Immutable booking view handed to the pure decision functions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from servicehub.core.enums import BookingStatus, PaymentPlan


@dataclass(frozen=True)
class BookingSnapshot:
    """
    Point-in-time copy of a booking row.

    ``payee_id`` is the provider's wallet-owning user, resolved through the
    provider directory. It is ``None`` when the caller has not resolved it.
    """

    id: str
    payer_id: str
    provider_id: str
    status: BookingStatus
    payment_plan: PaymentPlan
    amount: int
    first_payment_completed: bool = False
    final_payment_completed: bool = False
    payee_id: Optional[str] = None
    service_name: Optional[str] = None

    @classmethod
    def from_model(cls, booking: Any, payee_id: Optional[str] = None) -> "BookingSnapshot":
        return cls(
            id=booking.id,
            payer_id=booking.payer_id,
            provider_id=booking.provider_id,
            status=BookingStatus(booking.status),
            payment_plan=PaymentPlan(booking.payment_plan),
            amount=int(booking.amount),
            first_payment_completed=bool(booking.first_payment_completed),
            final_payment_completed=bool(booking.final_payment_completed),
            payee_id=payee_id,
            service_name=getattr(booking, "service_name", None),
        )

    @property
    def any_payment_made(self) -> bool:
        return self.first_payment_completed or self.final_payment_completed

    @property
    def fully_paid(self) -> bool:
        if self.payment_plan is PaymentPlan.HALF:
            return self.first_payment_completed and self.final_payment_completed
        return self.final_payment_completed

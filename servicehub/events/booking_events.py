"""Booking domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class BookingStatusChanged:
    """Fired after a booking enters a new status."""

    booking_id: str
    previous_status: Optional[str]  # None when the booking was just created
    new_status: str
    actor_id: Optional[str]
    occurred_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def idempotency_key(self) -> str:
        # Statuses only move forward, so each one is entered at most once.
        return f"{type(self).__name__}:{self.booking_id}:{self.new_status}"


@dataclass
class PaymentCompleted:
    """Fired after a settlement step commits."""

    booking_id: str
    reference: str
    amount: int
    stage: str  # full_payment | first_payment | final_payment
    payer_id: str
    payee_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def idempotency_key(self) -> str:
        return f"{type(self).__name__}:{self.reference}"

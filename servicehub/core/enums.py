# servicehub/core/enums.py
"""
Core enums for the servicehub booking and ledger core.

Stored values are the lowercase strings used by the marketplace clients,
so rows written by older clients stay readable.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Requested by the payer, awaiting the provider
    ACCEPTED = "accepted"  # Provider accepted, awaiting first payment
    IN_PROGRESS = "in_progress"  # First installment cleared, work under way
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class PaymentPlan(str, Enum):
    """How the booking amount is split into installments."""

    FULL_UPFRONT = "full_upfront"
    HALF = "half"


class PaymentStage(str, Enum):
    """Which installment a settlement step pays; stored as the metadata tag."""

    FULL_PAYMENT = "full_payment"
    FIRST_PAYMENT = "first_payment"
    FINAL_PAYMENT = "final_payment"


class TransactionType(str, Enum):
    PAYMENT = "payment"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ReportStatus(str, Enum):
    """Reports are created pending; moderation happens elsewhere."""

    PENDING = "pending"


class BookingGroup(str, Enum):
    """Status groupings used by booking list views."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def statuses(self) -> tuple[BookingStatus, ...]:
        if self is BookingGroup.ACTIVE:
            return (BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS)
        if self is BookingGroup.COMPLETED:
            return (BookingStatus.COMPLETED,)
        return (BookingStatus.CANCELLED,)

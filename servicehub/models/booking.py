# servicehub/models/booking.py
"""
Booking model.

A booking ties a payer to a provider with a price and a payment plan.
Rows are never deleted: a booking ends either completed or cancelled.
Status and payment flags are only written through BookingRepository's
conditional updates.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BookingStatus, PaymentPlan
from ..database import Base

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BookingStatus)
_PLAN_VALUES = ", ".join(f"'{p.value}'" for p in PaymentPlan)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Parties
    payer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)

    # Service snapshot
    service_name = Column(String(255), nullable=False)
    amount = Column(BigInteger, nullable=False, comment="Total price in minor units")
    payment_plan = Column(String(20), nullable=False, default=PaymentPlan.FULL_UPFRONT.value)

    # Lifecycle
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    first_payment_completed = Column(Boolean, nullable=False, default=False)
    final_payment_completed = Column(Boolean, nullable=False, default=False)

    # Badge flags, reset for the counterparty on every transition
    payer_viewed = Column(Boolean, nullable=False, default=True)
    provider_viewed = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation tracking
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    payer = relationship("User", foreign_keys=[payer_id])
    provider = relationship("Provider", foreign_keys=[provider_id])

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_bookings_status"),
        CheckConstraint(f"payment_plan IN ({_PLAN_VALUES})", name="ck_bookings_payment_plan"),
        CheckConstraint("amount >= 0", name="ck_bookings_amount_non_negative"),
        CheckConstraint(
            "NOT final_payment_completed OR first_payment_completed",
            name="ck_bookings_final_implies_first",
        ),
        Index("idx_bookings_payer_status", "payer_id", "status"),
        Index("idx_bookings_provider_status", "provider_id", "status"),
    )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def plan_enum(self) -> PaymentPlan:
        return PaymentPlan(self.payment_plan)

    @property
    def payment_status(self) -> str:
        """'completed' once every installment has cleared, else 'pending'."""
        if self.plan_enum is PaymentPlan.HALF:
            paid = bool(self.first_payment_completed and self.final_payment_completed)
        else:
            paid = bool(self.final_payment_completed)
        return "completed" if paid else "pending"

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, plan={self.payment_plan})>"


__all__ = ["Booking", "BookingStatus", "PaymentPlan"]

# servicehub/schemas/booking.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..core.enums import BookingStatus, PaymentPlan, PaymentStage
from .base import NonBlankStr, StandardizedModel, StrictModel


class BookingCreateRequest(StrictModel):
    payer_id: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    service_name: NonBlankStr = Field(..., max_length=255)
    amount: int = Field(..., gt=0, description="Total price in minor units")
    payment_plan: PaymentPlan = PaymentPlan.FULL_UPFRONT


class ProviderActionRequest(StrictModel):
    provider_id: str = Field(..., min_length=1)


class RejectBookingRequest(ProviderActionRequest):
    reason: Optional[str] = Field(None, max_length=1000)


class PayBookingRequest(StrictModel):
    actor_id: str = Field(..., min_length=1)
    reference: Optional[str] = Field(None, min_length=1, max_length=64)


class CancelBookingRequest(StrictModel):
    actor_id: str = Field(..., min_length=1)
    reason: NonBlankStr = Field(..., max_length=1000)


class MarkViewedRequest(StrictModel):
    actor_id: str = Field(..., min_length=1)
    as_provider: bool = False


class BookingResponse(StandardizedModel):
    id: str
    payer_id: str
    provider_id: str
    service_name: str
    amount: int
    payment_plan: PaymentPlan
    status: BookingStatus
    payment_status: str
    first_payment_completed: bool
    final_payment_completed: bool
    payer_viewed: bool
    provider_viewed: bool
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class SettlementResponse(StandardizedModel):
    reference: str
    booking_id: str
    stage: PaymentStage
    amount: int
    new_status: BookingStatus
    replayed: bool = False
    payer_balance: Optional[int] = None


class MarkViewedResponse(StrictModel):
    updated: int

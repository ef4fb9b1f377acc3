# servicehub/routes/bookings.py
"""
Booking routes.

Endpoints:
    POST /bookings                  → Create a booking (payer)
    GET  /bookings                  → List a party's bookings, optionally by group
    POST /bookings/viewed           → Clear the unseen-changes badge
    GET  /bookings/{id}             → Booking detail for a party
    POST /bookings/{id}/accept      → Provider accepts a pending booking
    POST /bookings/{id}/reject      → Provider rejects a pending booking
    POST /bookings/{id}/pay         → Payer settles the next installment
    POST /bookings/{id}/cancel      → Payer cancels
    POST /bookings/{id}/done        → Provider marks a fully paid booking complete
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..api.dependencies.services import get_booking_lifecycle_service
from ..core.enums import BookingGroup
from ..core.exceptions import DomainException
from ..schemas.booking import (
    BookingCreateRequest,
    BookingResponse,
    CancelBookingRequest,
    MarkViewedRequest,
    MarkViewedResponse,
    PayBookingRequest,
    ProviderActionRequest,
    RejectBookingRequest,
    SettlementResponse,
)
from ..services.booking_lifecycle_service import BookingLifecycleService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.create_booking(
            payer_id=payload.payer_id,
            provider_id=payload.provider_id,
            service_name=payload.service_name,
            amount=payload.amount,
            payment_plan=payload.payment_plan,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    actor_id: str = Query(..., min_length=1),
    as_provider: bool = Query(False),
    group: Optional[BookingGroup] = Query(None),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> List[BookingResponse]:
    bookings = service.list_bookings(actor_id, as_provider=as_provider, group=group)
    return [BookingResponse.model_validate(b) for b in bookings]


# Static routes before /{booking_id}
@router.post("/viewed", response_model=MarkViewedResponse)
def mark_viewed(
    payload: MarkViewedRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> MarkViewedResponse:
    updated = service.mark_viewed(payload.actor_id, as_provider=payload.as_provider)
    return MarkViewedResponse(updated=updated)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    actor_id: str = Query(..., min_length=1),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.get_booking(booking_id, actor_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(
    booking_id: str,
    payload: ProviderActionRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.accept(booking_id, payload.provider_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: str,
    payload: RejectBookingRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.reject(booking_id, payload.provider_id, payload.reason)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/pay", response_model=SettlementResponse)
def pay_booking(
    booking_id: str,
    payload: PayBookingRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> SettlementResponse:
    """
    Settle the next installment.

    On 503 the ledger write was rolled back; retry with the returned
    ``reference`` to avoid a double charge.
    """
    try:
        result = service.pay(booking_id, payload.actor_id, reference=payload.reference)
    except DomainException as e:
        handle_domain_exception(e)
    return SettlementResponse.model_validate(result)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    payload: CancelBookingRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.cancel(booking_id, payload.actor_id, payload.reason)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/done", response_model=BookingResponse)
def mark_booking_done(
    booking_id: str,
    payload: ProviderActionRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        booking = service.mark_done(booking_id, payload.provider_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)

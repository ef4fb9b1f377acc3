# servicehub/routes/reviews.py
"""
Review and report routes.

Endpoints:
    POST /bookings/{id}/reviews     → Payer reviews a completed booking
    POST /reports                   → Either party reports the other
    GET  /providers/{id}/rating     → Review count and average for a provider
"""

import logging

from fastapi import APIRouter, Depends, status

from ..api.dependencies.services import get_review_service
from ..core.exceptions import DomainException
from ..schemas.review import (
    ProviderRatingResponse,
    ReportCreateRequest,
    ReportResponse,
    ReviewCreateRequest,
    ReviewResponse,
)
from ..services.review_service import ReviewService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


@router.post(
    "/bookings/{booking_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_review(
    booking_id: str,
    payload: ReviewCreateRequest,
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        review = service.submit_review(booking_id, payload.actor_id, payload.rating, payload.comment)
    except DomainException as e:
        handle_domain_exception(e)
    return ReviewResponse.model_validate(review)


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def submit_report(
    payload: ReportCreateRequest,
    service: ReviewService = Depends(get_review_service),
) -> ReportResponse:
    try:
        report = service.submit_report(
            payload.reporter_id,
            payload.reason,
            description=payload.description,
            booking_id=payload.booking_id,
            reported_id=payload.reported_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ReportResponse.model_validate(report)


@router.get("/providers/{provider_id}/rating", response_model=ProviderRatingResponse)
def get_provider_rating(
    provider_id: str,
    service: ReviewService = Depends(get_review_service),
) -> ProviderRatingResponse:
    try:
        count, average = service.get_provider_rating(provider_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ProviderRatingResponse(
        provider_id=provider_id,
        review_count=count,
        average_rating=round(average, 2) if average is not None else None,
    )

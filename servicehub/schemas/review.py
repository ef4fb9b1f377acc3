# servicehub/schemas/review.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .base import NonBlankStr, StandardizedModel, StrictModel


class ReviewCreateRequest(StrictModel):
    actor_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: NonBlankStr = Field(..., max_length=2000)


class ReviewResponse(StandardizedModel):
    id: str
    booking_id: str
    user_id: str
    provider_user_id: str
    rating: int
    comment: str
    created_at: Optional[datetime] = None


class ReportCreateRequest(StrictModel):
    reporter_id: str = Field(..., min_length=1)
    reason: NonBlankStr = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    booking_id: Optional[str] = None
    reported_id: Optional[str] = None


class ReportResponse(StandardizedModel):
    id: str
    reporter_id: str
    reported_id: str
    booking_id: Optional[str] = None
    reason: str
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class ProviderRatingResponse(BaseModel):
    provider_id: str
    review_count: int
    average_rating: Optional[float] = None

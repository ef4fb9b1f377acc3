# servicehub/services/review_service.py
"""
Reviews and reports for bookings.

The payee (the provider's user) always comes from the provider directory,
never from the provider record id.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, StateConflictException, ValidationException
from ..domain.eligibility import can_report, can_review
from ..domain.snapshot import BookingSnapshot
from ..models.review import Report, Review
from ..repositories.base_repository import DuplicateRecordException
from ..repositories.factory import RepositoryFactory
from ..repositories.provider_repository import ProviderResolver
from .base import BaseService

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService(BaseService):
    def __init__(self, db: Session, provider_resolver: Optional[ProviderResolver] = None):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.review_repository = RepositoryFactory.create_review_repository(db)
        self.report_repository = RepositoryFactory.create_report_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.provider_resolver: ProviderResolver = (
            provider_resolver or RepositoryFactory.create_provider_repository(db)
        )

    @BaseService.measure_operation("submit_review")
    def submit_review(self, booking_id: str, actor_id: str, rating: int, comment: str) -> Review:
        """
        Leave the payer's review of a completed booking.

        A second review for the same (booking, user) raises
        StateConflictException and writes nothing.
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not (
            MIN_RATING <= rating <= MAX_RATING
        ):
            raise ValidationException(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                code="INVALID_RATING",
                details={"rating": rating},
            )
        if not comment or not comment.strip():
            raise ValidationException("A review comment is required", code="COMMENT_REQUIRED")

        snapshot = self._load_snapshot(booking_id)
        has_existing = self.review_repository.exists_for_booking_user(booking_id, actor_id)
        can_review(snapshot, actor_id, has_existing_review=has_existing).raise_if_denied()

        try:
            with self.transaction():
                review = self.review_repository.create_review(
                    booking_id=booking_id,
                    user_id=actor_id,
                    provider_user_id=snapshot.payee_id,
                    rating=rating,
                    comment=comment.strip(),
                )
        except DuplicateRecordException as exc:
            raise StateConflictException(
                "You have already reviewed this booking",
                booking_id=booking_id,
                details={"denial": "already_reviewed"},
            ) from exc

        self.log_operation("submit_review", booking_id=booking_id, rating=rating)
        return review

    @BaseService.measure_operation("submit_report")
    def submit_report(
        self,
        reporter_id: str,
        reason: str,
        description: Optional[str] = None,
        booking_id: Optional[str] = None,
        reported_id: Optional[str] = None,
    ) -> Report:
        """
        File a report against the other party of a booking, or a user directly.

        With a booking the reported party is derived from it: the payer
        reports the payee and the payee reports the payer.
        """
        if not reason or not reason.strip():
            raise ValidationException("A report reason is required", code="REASON_REQUIRED")

        if booking_id is not None:
            snapshot = self._load_snapshot(booking_id)
            can_report(snapshot, reporter_id).raise_if_denied()
            counterparty = (
                snapshot.payee_id if reporter_id == snapshot.payer_id else snapshot.payer_id
            )
            if reported_id is not None and reported_id != counterparty:
                raise ValidationException(
                    "Reported user is not the other party of this booking",
                    code="INVALID_REPORTED_USER",
                )
            reported_id = counterparty
        elif reported_id is None:
            raise ValidationException(
                "Either a booking or a reported user is required", code="REPORT_TARGET_REQUIRED"
            )
        elif not self.user_repository.exists(id=reported_id):
            raise NotFoundException(
                "User not found", code="USER_NOT_FOUND", details={"user_id": reported_id}
            )

        if reported_id == reporter_id:
            raise ValidationException("You cannot report yourself", code="SELF_REPORT_NOT_ALLOWED")

        with self.transaction():
            report = self.report_repository.create_report(
                reporter_id=reporter_id,
                reported_id=str(reported_id),
                reason=reason.strip(),
                description=description.strip() if description else None,
                booking_id=booking_id,
            )
        self.log_operation("submit_report", reporter_id=reporter_id, booking_id=booking_id)
        return report

    def get_provider_rating(self, provider_id: str) -> Tuple[int, Optional[float]]:
        provider_user_id = self.provider_resolver.resolve_provider_user_id(provider_id)
        return self.review_repository.get_provider_rating(provider_user_id)

    def _load_snapshot(self, booking_id: str) -> BookingSnapshot:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        payee_id = self.provider_resolver.resolve_provider_user_id(booking.provider_id)
        return BookingSnapshot.from_model(booking, payee_id=payee_id)

# servicehub/repositories/review_repository.py
"""
Repository for reviews.

Follows repository pattern: no business logic, DB-only operations.
"""

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.review import Review
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository[Review]):
    """Data access for `Review`."""

    def __init__(self, db: Session):
        super().__init__(db, Review)
        self.logger = logging.getLogger(__name__)

    def create_review(self, **kwargs: Any) -> Review:
        return self.create(**kwargs)

    def exists_for_booking_user(self, booking_id: str, user_id: str) -> bool:
        try:
            return (
                self.db.query(Review.id)
                .filter(Review.booking_id == booking_id, Review.user_id == user_id)
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking review existence: {e}")
            raise RepositoryException(f"Failed to check review existence: {e}") from e

    def get_provider_rating(self, provider_user_id: str) -> tuple[int, Optional[float]]:
        """Return (review_count, average_rating) for the provider's user."""
        try:
            count, average = (
                self.db.query(func.count(Review.id), func.avg(Review.rating * 1.0))
                .filter(Review.provider_user_id == provider_user_id)
                .one()
            )
            return int(count or 0), (float(average) if average is not None else None)
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating reviews: {e}")
            raise RepositoryException(f"Failed to aggregate reviews: {e}") from e

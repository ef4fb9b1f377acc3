"""
Reviews and reports.

Design notes:
- One review per (booking, user), enforced by a unique constraint as well
  as an existence check in the service.
- Reviews point at the provider's user (the payee), not the provider record.
- Reports only ever get created here; moderation lives outside this package.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy import UniqueConstraint
import ulid

from ..core.enums import ReportStatus
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("booking_id", "user_id", name="uq_reviews_booking_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<Review(booking_id={self.booking_id}, user_id={self.user_id}, rating={self.rating})>"


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    reporter_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    reported_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=True)
    reason = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (Index("idx_reports_booking", "booking_id"),)

    def __repr__(self) -> str:
        return f"<Report(reporter_id={self.reporter_id}, reported_id={self.reported_id})>"

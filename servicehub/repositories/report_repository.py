"""Repository for user/booking reports."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import ReportStatus
from ..models.review import Report
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReportRepository(BaseRepository[Report]):
    def __init__(self, db: Session):
        super().__init__(db, Report)
        self.logger = logging.getLogger(__name__)

    def create_report(
        self,
        *,
        reporter_id: str,
        reported_id: str,
        reason: str,
        description: Optional[str],
        booking_id: Optional[str] = None,
    ) -> Report:
        return self.create(
            reporter_id=reporter_id,
            reported_id=reported_id,
            booking_id=booking_id,
            reason=reason,
            description=description,
            status=ReportStatus.PENDING.value,
        )

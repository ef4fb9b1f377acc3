"""
Post-commit delivery of outbox events to the notification dispatcher.

Delivery never raises into the caller. A failing dispatcher leaves the
event PENDING with an exponential backoff until ``outbox_max_attempts``
is reached, after which it is marked FAILED.
"""

from dataclasses import dataclass
import logging
from time import monotonic
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..events.dispatcher import LoggingNotificationDispatcher, NotificationDispatcher
from ..models.event_outbox import EventOutbox
from ..monitoring.prometheus_metrics import PrometheusMetrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class DispatchSummary:
    sent: int = 0
    retrying: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.retrying + self.failed


class OutboxDispatchService(BaseService):
    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        *,
        max_attempts: Optional[int] = None,
        retry_base_seconds: Optional[int] = None,
    ):
        super().__init__(db)
        self.dispatcher = dispatcher or LoggingNotificationDispatcher()
        self.outbox_repository = RepositoryFactory.create_event_outbox_repository(db)
        self.max_attempts = max_attempts or settings.outbox_max_attempts
        self.retry_base_seconds = retry_base_seconds or settings.outbox_retry_base_seconds

    def backoff_seconds(self, attempt_number: int) -> int:
        """Delay before retrying after the ``attempt_number``-th failure (1-indexed)."""
        return int(self.retry_base_seconds * 2 ** max(attempt_number - 1, 0))

    @BaseService.measure_operation("dispatch_events")
    def dispatch(self, event_ids: Iterable[str]) -> DispatchSummary:
        """Deliver the given pending events, typically right after their commit."""
        summary = DispatchSummary()
        ids = list(event_ids)
        if not ids:
            return summary
        try:
            events = self.outbox_repository.get_by_ids(ids)
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Could not load outbox events %s: %s", ids, exc)
            return summary
        for event in events:
            self._deliver(event, summary)
        return summary

    @BaseService.measure_operation("dispatch_pending_events")
    def dispatch_pending(self, limit: Optional[int] = None) -> DispatchSummary:
        """Drain due events; the periodic counterpart of ``dispatch``."""
        summary = DispatchSummary()
        try:
            events = self.outbox_repository.fetch_pending(limit=limit or settings.outbox_batch_size)
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Could not fetch pending outbox events: %s", exc)
            return summary
        for event in events:
            self._deliver(event, summary)
        if summary.attempted:
            self.logger.info(
                "Outbox drain: sent=%s retrying=%s failed=%s",
                summary.sent,
                summary.retrying,
                summary.failed,
            )
        return summary

    def _deliver(self, event: EventOutbox, summary: DispatchSummary) -> None:
        event_id = str(event.id)
        event_type = str(event.event_type)
        attempt_number = int(event.attempt_count or 0) + 1
        envelope = {
            "event_type": event_type,
            "aggregate_id": event.aggregate_id,
            "idempotency_key": event.idempotency_key,
            "payload": dict(event.payload or {}),
        }
        PrometheusMetrics.record_notification_attempt(event_type)

        start = monotonic()
        try:
            self.dispatcher.notify(envelope)
        except Exception as exc:
            PrometheusMetrics.observe_notification_dispatch(event_type, monotonic() - start)
            self._record_failure(event_id, event_type, attempt_number, exc, summary)
            return
        PrometheusMetrics.observe_notification_dispatch(event_type, monotonic() - start)

        try:
            self.outbox_repository.mark_sent(event_id, attempt_number)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            # Delivered but not recorded; the dispatcher sees the same idempotency key again.
            self.logger.error("Could not mark outbox event %s sent: %s", event_id, exc)
            return
        summary.sent += 1
        PrometheusMetrics.record_notification_outcome(event_type, "sent")
        self.logger.info(
            "Delivered outbox event %s type=%s attempts=%s",
            event_id,
            event_type,
            attempt_number,
        )

    def _record_failure(
        self,
        event_id: str,
        event_type: str,
        attempt_number: int,
        exc: Exception,
        summary: DispatchSummary,
    ) -> None:
        terminal = attempt_number >= self.max_attempts
        backoff = self.backoff_seconds(attempt_number)
        try:
            self.outbox_repository.mark_failed(
                event_id,
                attempt_count=attempt_number,
                backoff_seconds=backoff,
                error=f"{type(exc).__name__}: {exc}",
                terminal=terminal,
            )
            self.db.commit()
        except SQLAlchemyError as db_exc:
            self.db.rollback()
            self.logger.error("Could not record failure for outbox event %s: %s", event_id, db_exc)

        if terminal:
            summary.failed += 1
            PrometheusMetrics.record_notification_outcome(event_type, "failed")
            self.logger.error(
                "Outbox event %s failed permanently after %s attempts: %s",
                event_id,
                attempt_number,
                exc,
            )
        else:
            summary.retrying += 1
            self.logger.warning(
                "Notification dispatch failed for outbox event %s attempt=%s; retrying in %ss: %s",
                event_id,
                attempt_number,
                backoff,
                exc,
            )

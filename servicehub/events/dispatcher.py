"""
Notification dispatcher seam.

The core hands every committed domain event to a ``NotificationDispatcher``.
Delivery is best-effort: whatever a dispatcher raises is logged and retried
by the outbox, and never reaches the caller of the booking operation.
"""

import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def notify(self, event: Dict[str, Any]) -> None:
        """
        Deliver one event envelope.

        The envelope has ``event_type``, ``aggregate_id``,
        ``idempotency_key`` and ``payload`` keys.
        """
        ...


class LoggingNotificationDispatcher:
    """Default dispatcher: records the event in the application log."""

    def notify(self, event: Dict[str, Any]) -> None:
        logger.info(
            "Notification %s for booking %s",
            event.get("event_type"),
            event.get("aggregate_id"),
            extra={"idempotency_key": event.get("idempotency_key")},
        )

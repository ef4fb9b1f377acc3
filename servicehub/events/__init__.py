"""Domain events and their outbox publisher."""

from servicehub.events.booking_events import BookingStatusChanged, PaymentCompleted
from servicehub.events.dispatcher import LoggingNotificationDispatcher, NotificationDispatcher
from servicehub.events.publisher import EventPublisher

__all__ = [
    "BookingStatusChanged",
    "EventPublisher",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "PaymentCompleted",
]

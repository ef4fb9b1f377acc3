"""Event publisher - writes domain events to the outbox in the caller's transaction."""
from datetime import datetime
from typing import Any, Dict, Protocol

from servicehub.repositories.event_outbox_repository import EventOutboxRepository


class Event(Protocol):
    """Protocol for event types."""

    booking_id: str

    def to_dict(self) -> Dict[str, Any]:
        ...

    def idempotency_key(self) -> str:
        ...


class EventPublisher:
    """Publishes domain events to the outbox for post-commit delivery."""

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event) -> str:
        """
        Queue an event for delivery and return the outbox row id.

        Nothing is sent until the surrounding transaction commits and the
        dispatch service picks the row up.
        """
        event_type = type(event).__name__
        payload = event.to_dict()

        # Convert datetime objects to ISO strings for JSON serialization
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        row = self.outbox_repo.enqueue(
            event_type=event_type,
            aggregate_id=event.booking_id,
            payload=payload,
            idempotency_key=event.idempotency_key(),
        )
        return str(row.id)

# servicehub/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...events.dispatcher import LoggingNotificationDispatcher, NotificationDispatcher
from ...services.booking_lifecycle_service import BookingLifecycleService
from ...services.outbox_dispatch_service import OutboxDispatchService
from ...services.review_service import ReviewService
from ...services.wallet_service import WalletService

logger = logging.getLogger(__name__)

_default_dispatcher = LoggingNotificationDispatcher()


def get_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher that receives committed booking and payment events."""
    return _default_dispatcher


def get_booking_lifecycle_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> BookingLifecycleService:
    return BookingLifecycleService(db, notification_dispatcher=dispatcher)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    return WalletService(db)


def get_outbox_dispatch_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> OutboxDispatchService:
    return OutboxDispatchService(db, dispatcher)

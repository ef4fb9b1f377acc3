"""
Database models for the servicehub core.

- User / Provider: parties (the provider record and its wallet owner differ)
- Booking: lifecycle and payment flags
- Wallet / Transaction: the ledger
- Review / Report
- EventOutbox: domain events awaiting notification delivery
"""

from .booking import Booking, BookingStatus, PaymentPlan
from .event_outbox import EventOutbox, EventOutboxStatus
from .review import Report, Review
from .user import Provider, User
from .wallet import Transaction, Wallet

__all__ = [
    "Booking",
    "BookingStatus",
    "EventOutbox",
    "EventOutboxStatus",
    "PaymentPlan",
    "Provider",
    "Report",
    "Review",
    "Transaction",
    "User",
    "Wallet",
]

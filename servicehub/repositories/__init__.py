"""
Repository layer for the servicehub core.

Repositories own data access only; they flush but never commit.
"""

from .base_repository import BaseRepository, DuplicateRecordException
from .booking_repository import BookingRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .provider_repository import ProviderRepository, ProviderResolver, UserRepository
from .report_repository import ReportRepository
from .review_repository import ReviewRepository
from .wallet_repository import WalletRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "DuplicateRecordException",
    "EventOutboxRepository",
    "ProviderRepository",
    "ProviderResolver",
    "ReportRepository",
    "RepositoryFactory",
    "ReviewRepository",
    "UserRepository",
    "WalletRepository",
]

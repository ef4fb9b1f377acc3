# servicehub/repositories/factory.py
"""
Repository Factory for the servicehub core.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .event_outbox_repository import EventOutboxRepository
    from .provider_repository import ProviderRepository, UserRepository
    from .report_repository import ReportRepository
    from .review_repository import ReviewRepository
    from .wallet_repository import WalletRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking reads and conditional writes."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_wallet_repository(db: Session) -> "WalletRepository":
        """Create repository for wallet balances and the transaction log."""
        from .wallet_repository import WalletRepository

        return WalletRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_report_repository(db: Session) -> "ReportRepository":
        from .report_repository import ReportRepository

        return ReportRepository(db)

    @staticmethod
    def create_provider_repository(db: Session) -> "ProviderRepository":
        """Create the provider directory used to resolve payees."""
        from .provider_repository import ProviderRepository

        return ProviderRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .provider_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)

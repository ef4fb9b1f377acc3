"""
Provider directory.

``resolve_provider_user_id`` is the only way the core turns a provider
record id into the user who owns the provider's wallet. Settlement, reviews
and reports all go through it.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, RepositoryException
from ..models.user import Provider, User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProviderResolver(Protocol):
    """Maps a provider record to its wallet-owning user."""

    def resolve_provider_user_id(self, provider_id: str) -> str:
        ...


class ProviderRepository(BaseRepository[Provider]):
    def __init__(self, db: Session):
        super().__init__(db, Provider)
        self.logger = logging.getLogger(__name__)

    def resolve_provider_user_id(self, provider_id: str) -> str:
        try:
            user_id = self.db.execute(
                select(Provider.user_id).where(Provider.id == provider_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to resolve provider: {str(e)}") from e
        if user_id is None:
            raise NotFoundException(
                "Provider not found", code="PROVIDER_NOT_FOUND", details={"provider_id": provider_id}
            )
        return str(user_id)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)
        self.logger = logging.getLogger(__name__)

    def get_display_name(self, user_id: str) -> Optional[str]:
        user = self.get_by_id(user_id)
        return user.full_name if user else None

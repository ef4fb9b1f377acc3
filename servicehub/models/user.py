"""User and provider records referenced by bookings and wallets."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class User(Base):
    """A marketplace account. Owns at most one wallet."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    providers = relationship("Provider", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.full_name})>"


class Provider(Base):
    """
    A provider listing.

    The provider record and the user who owns its wallet are different
    identities; ``user_id`` is the only link between them.
    """

    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    business_name = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    user = relationship("User", back_populates="providers")

    def __repr__(self) -> str:
        return f"<Provider(id={self.id}, user_id={self.user_id})>"

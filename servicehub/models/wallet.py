"""
Ledger models: wallet balances and the immutable transaction log.

Balances are only changed with atomic SQL increments issued by
WalletRepository; transaction rows are never updated except for the
one-time pending -> completed/failed resolution of gateway deposits.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON
import ulid

from ..core.enums import TransactionStatus, TransactionType
from ..database import Base


class Wallet(Base):
    """One wallet per user, holding a non-negative integer balance."""

    __tablename__ = "wallets"

    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True
    )
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),)

    def __repr__(self) -> str:
        return f"<Wallet(user_id={self.user_id}, balance={self.balance})>"


class Transaction(Base):
    """Ledger entry. ``reference`` is globally unique and doubles as the idempotency key."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    reference: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Minor units")
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=TransactionType.PAYMENT.value)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    payer_id: Mapped[Optional[str]] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    payee_id: Mapped[Optional[str]] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    booking_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("bookings.id"), nullable=True, index=True
    )
    transaction_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        Index("idx_transactions_payer_created", "payer_id", "created_at"),
        Index("idx_transactions_payee_created", "payee_id", "created_at"),
    )

    @property
    def payment_stage(self) -> Optional[str]:
        return (self.transaction_metadata or {}).get("payment_type")

    def __repr__(self) -> str:
        return (
            f"<Transaction(reference={self.reference}, type={self.type}, "
            f"amount={self.amount}, status={self.status})>"
        )

# servicehub/repositories/wallet_repository.py
"""
Wallet Repository (the ledger store).

Balances are never read into Python, adjusted, and written back. Debits
and credits are single UPDATE statements evaluated by the database
(``balance = balance - :amount WHERE balance >= :amount``) so concurrent
settlements touching the same wallet cannot lose an increment.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional, cast

from sqlalchemy import insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import TransactionStatus, TransactionType
from ..core.exceptions import RepositoryException
from ..models.wallet import Transaction, Wallet
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WalletRepository(BaseRepository[Transaction]):
    """Wallet balances plus the immutable transaction log."""

    def __init__(self, db: Session):
        super().__init__(db, Transaction)
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------ balances
    def get_wallet(self, user_id: str) -> Optional[Wallet]:
        try:
            return cast(
                Optional[Wallet],
                self.db.query(Wallet).filter(Wallet.user_id == user_id).populate_existing().first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading wallet for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load wallet: {str(e)}") from e

    def get_balance(self, user_id: str) -> int:
        """Current committed balance as seen by this transaction; 0 if no wallet yet."""
        try:
            value = self.db.execute(
                select(Wallet.balance).where(Wallet.user_id == user_id)
            ).scalar_one_or_none()
            return int(value or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading balance for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to read wallet balance: {str(e)}") from e

    def ensure_wallet(self, user_id: str) -> None:
        """Create an empty wallet for ``user_id`` unless one exists."""
        values = {"user_id": user_id, "balance": 0}
        try:
            if self.dialect_name == "postgresql":
                stmt = (
                    pg_insert(Wallet).values(**values).on_conflict_do_nothing(index_elements=["user_id"])
                )
            else:
                stmt = insert(Wallet).values(**values)
                if self.dialect_name == "sqlite":
                    stmt = stmt.prefix_with("OR IGNORE")
                elif self.get_wallet(user_id) is not None:
                    return
            self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating wallet for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to create wallet: {str(e)}") from e

    def increment(self, user_id: str, amount: int) -> None:
        """Atomically add ``amount`` to the wallet, creating it if needed."""
        if amount < 0:
            raise ValueError("increment amount must be non-negative")
        self.ensure_wallet(user_id)
        rows = self._adjust(user_id, Wallet.balance + amount)
        if rows != 1:
            raise RepositoryException(f"Wallet for {user_id} vanished during credit")

    def decrement_if_sufficient(self, user_id: str, amount: int) -> bool:
        """
        Atomically subtract ``amount`` when the balance covers it.

        Returns False, writing nothing, when the wallet is missing or short.
        """
        if amount < 0:
            raise ValueError("decrement amount must be non-negative")
        return self._adjust(user_id, Wallet.balance - amount, Wallet.balance >= amount) == 1

    def _adjust(self, user_id: str, new_balance: Any, *conditions: Any) -> int:
        stmt = (
            update(Wallet)
            .where(Wallet.user_id == user_id, *conditions)
            .values(balance=new_balance, updated_at=_now_utc())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error adjusting wallet for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to adjust wallet balance: {str(e)}") from e
        instance = self.db.identity_map.get(self.db.identity_key(Wallet, user_id))
        if instance is not None:
            self.db.expire(instance)
        return int(result.rowcount or 0)

    # -------------------------------------------------------- transactions
    def create_transaction(
        self,
        *,
        reference: str,
        amount: int,
        type: TransactionType,
        status: TransactionStatus,
        payer_id: Optional[str],
        payee_id: Optional[str],
        booking_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Insert a ledger entry; a reused reference raises DuplicateRecordException."""
        return self.create(
            reference=reference,
            amount=amount,
            type=type.value,
            status=status.value,
            payer_id=payer_id,
            payee_id=payee_id,
            booking_id=booking_id,
            transaction_metadata=metadata or {},
            resolved_at=_now_utc() if status is not TransactionStatus.PENDING else None,
        )

    def get_by_reference(self, reference: str) -> Optional[Transaction]:
        try:
            return cast(
                Optional[Transaction],
                self.db.query(Transaction)
                .filter(Transaction.reference == reference)
                .populate_existing()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching transaction {reference}: {str(e)}")
            raise RepositoryException(f"Failed to fetch transaction: {str(e)}") from e

    def resolve_pending(self, reference: str, outcome: TransactionStatus) -> bool:
        """Move a pending transaction to ``outcome`` exactly once."""
        if outcome is TransactionStatus.PENDING:
            raise ValueError("outcome must be completed or failed")
        stmt = (
            update(Transaction)
            .where(
                Transaction.reference == reference,
                Transaction.status == TransactionStatus.PENDING.value,
            )
            .values(status=outcome.value, resolved_at=_now_utc())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving transaction {reference}: {str(e)}")
            raise RepositoryException(f"Failed to resolve transaction: {str(e)}") from e
        return result.rowcount == 1

    def list_for_user(self, user_id: str, *, limit: int = 50, offset: int = 0) -> List[Transaction]:
        """Transactions where the user paid or was paid, newest first."""
        try:
            return cast(
                List[Transaction],
                self.db.query(Transaction)
                .filter(or_(Transaction.payer_id == user_id, Transaction.payee_id == user_id))
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .offset(offset)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing transactions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list transactions: {str(e)}") from e

    def list_for_booking(self, booking_id: str) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.booking_id == booking_id)
            .order_by(Transaction.created_at.asc(), Transaction.id.asc())
            .all()
        )


__all__ = ["WalletRepository"]

# servicehub/services/wallet_service.py
"""
Wallet Service - deposits, withdrawals and reads.

Deposits are recorded pending and credited exactly once when the payment
gateway confirms them. Withdrawals debit with the same conditional
decrement settlements use, so a wallet can never go negative.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import TransactionStatus, TransactionType
from ..core.exceptions import (
    ConflictException,
    DomainException,
    InsufficientFundsException,
    LedgerWriteException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.ulid_helper import (
    DEPOSIT_REFERENCE_PREFIX,
    WITHDRAWAL_REFERENCE_PREFIX,
    generate_reference,
)
from ..models.wallet import Transaction
from ..repositories.base_repository import DuplicateRecordException
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationException(
            "Amount must be a positive whole number of minor units",
            code="INVALID_AMOUNT",
            details={"amount": amount},
        )


class WalletService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.wallet_repository = RepositoryFactory.create_wallet_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def get_balance(self, user_id: str) -> int:
        return self.wallet_repository.get_balance(user_id)

    def list_transactions(self, user_id: str, *, limit: int = 50, offset: int = 0) -> List[Transaction]:
        if limit <= 0 or offset < 0:
            raise ValidationException("Invalid pagination parameters", code="INVALID_PAGINATION")
        return self.wallet_repository.list_for_user(user_id, limit=min(limit, 200), offset=offset)

    @BaseService.measure_operation("initiate_deposit")
    def initiate_deposit(
        self, user_id: str, amount: int, reference: Optional[str] = None
    ) -> Transaction:
        """Record a pending top-up awaiting gateway confirmation."""
        _require_positive(amount)
        self._require_user(user_id)
        reference = reference or generate_reference(DEPOSIT_REFERENCE_PREFIX)
        return self._write_once(
            reference,
            user_id,
            TransactionType.DEPOSIT,
            lambda: self.wallet_repository.create_transaction(
                reference=reference,
                amount=amount,
                type=TransactionType.DEPOSIT,
                status=TransactionStatus.PENDING,
                payer_id=None,
                payee_id=user_id,
                metadata={"payment_type": TransactionType.DEPOSIT.value},
            ),
        )

    @BaseService.measure_operation("confirm_deposit")
    def confirm_deposit(self, reference: str, success: bool = True) -> Transaction:
        """
        Apply the gateway's verdict on a pending deposit.

        Only the first confirmation changes anything; repeats return the
        already-resolved transaction.
        """
        transaction = self.wallet_repository.get_by_reference(reference)
        if transaction is None or transaction.type != TransactionType.DEPOSIT.value:
            raise NotFoundException(
                "Deposit not found", code="DEPOSIT_NOT_FOUND", details={"reference": reference}
            )
        outcome = TransactionStatus.COMPLETED if success else TransactionStatus.FAILED
        try:
            resolved = self.wallet_repository.resolve_pending(reference, outcome)
            if resolved and success:
                self.wallet_repository.increment(str(transaction.payee_id), int(transaction.amount))
            self.db.commit()
        except (SQLAlchemyError, RepositoryException) as exc:
            self.db.rollback()
            self.logger.error("Ledger write failed confirming deposit %s: %s", reference, exc)
            raise LedgerWriteException(reference, type(exc).__name__) from exc

        if resolved:
            self.log_operation("confirm_deposit", reference=reference, outcome=outcome.value)
        else:
            self.logger.info("Deposit %s already resolved; confirmation ignored", reference)
        return self._reload(reference)

    @BaseService.measure_operation("withdraw")
    def withdraw(self, user_id: str, amount: int, reference: Optional[str] = None) -> Transaction:
        _require_positive(amount)
        self._require_user(user_id)
        reference = reference or generate_reference(WITHDRAWAL_REFERENCE_PREFIX)

        def write() -> Transaction:
            transaction = self.wallet_repository.create_transaction(
                reference=reference,
                amount=amount,
                type=TransactionType.WITHDRAWAL,
                status=TransactionStatus.COMPLETED,
                payer_id=user_id,
                payee_id=None,
                metadata={"payment_type": TransactionType.WITHDRAWAL.value},
            )
            if not self.wallet_repository.decrement_if_sufficient(user_id, amount):
                raise InsufficientFundsException(
                    required_amount=amount,
                    available_amount=self.wallet_repository.get_balance(user_id),
                )
            return transaction

        return self._write_once(reference, user_id, TransactionType.WITHDRAWAL, write)

    def _write_once(self, reference, user_id, kind, write) -> Transaction:
        """Run ``write`` in one transaction; a reused reference replays the original row."""
        try:
            transaction = write()
            self.db.commit()
        except DuplicateRecordException:
            self.db.rollback()
            existing = self._reload(reference)
            owner = existing.payee_id if kind is TransactionType.DEPOSIT else existing.payer_id
            if existing.type != kind.value or owner != user_id:
                raise ConflictException(
                    "Reference is already in use",
                    code="REFERENCE_CONFLICT",
                    details={"reference": reference},
                )
            return existing
        except DomainException:
            self.db.rollback()
            raise
        except (SQLAlchemyError, RepositoryException) as exc:
            self.db.rollback()
            self.logger.error("Ledger write failed for %s %s: %s", kind.value, reference, exc)
            raise LedgerWriteException(reference, type(exc).__name__) from exc
        self.log_operation(kind.value, reference=reference, user_id=user_id)
        return transaction

    def _reload(self, reference: str) -> Transaction:
        transaction = self.wallet_repository.get_by_reference(reference)
        if transaction is None:
            raise NotFoundException(
                "Transaction not found", code="TRANSACTION_NOT_FOUND", details={"reference": reference}
            )
        return transaction

    def _require_user(self, user_id: str) -> None:
        if not self.user_repository.exists(id=user_id):
            raise NotFoundException("User not found", code="USER_NOT_FOUND", details={"user_id": user_id})

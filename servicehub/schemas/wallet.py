# servicehub/schemas/wallet.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.wallet import Transaction
from .base import StrictModel


class DepositRequest(StrictModel):
    amount: int = Field(..., gt=0)
    reference: Optional[str] = Field(None, min_length=1, max_length=64)


class DepositConfirmRequest(StrictModel):
    success: bool = True


class WithdrawalRequest(StrictModel):
    amount: int = Field(..., gt=0)
    reference: Optional[str] = Field(None, min_length=1, max_length=64)


class WalletBalanceResponse(BaseModel):
    user_id: str
    balance: int
    currency: str


class TransactionResponse(BaseModel):
    id: str
    reference: str
    amount: int
    type: str
    status: str
    payer_id: Optional[str] = None
    payee_id: Optional[str] = None
    booking_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            reference=transaction.reference,
            amount=transaction.amount,
            type=transaction.type,
            status=transaction.status,
            payer_id=transaction.payer_id,
            payee_id=transaction.payee_id,
            booking_id=transaction.booking_id,
            metadata=dict(transaction.transaction_metadata or {}),
            created_at=transaction.created_at,
            resolved_at=transaction.resolved_at,
        )


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    limit: int
    offset: int

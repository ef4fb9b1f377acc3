# servicehub/routes/wallets.py
"""
Wallet routes.

Endpoints:
    GET  /wallets/{user_id}                       → Balance
    GET  /wallets/{user_id}/transactions          → Ledger history, newest first
    POST /wallets/{user_id}/deposits              → Record a pending top-up
    POST /wallets/deposits/{reference}/confirm    → Gateway confirmation (success or failure)
    POST /wallets/{user_id}/withdrawals           → Withdraw from the wallet
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from ..api.dependencies.services import get_wallet_service
from ..core.config import settings
from ..core.exceptions import DomainException
from ..schemas.wallet import (
    DepositConfirmRequest,
    DepositRequest,
    TransactionListResponse,
    TransactionResponse,
    WalletBalanceResponse,
    WithdrawalRequest,
)
from ..services.wallet_service import WalletService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.post("/deposits/{reference}/confirm", response_model=TransactionResponse)
def confirm_deposit(
    reference: str,
    payload: DepositConfirmRequest,
    service: WalletService = Depends(get_wallet_service),
) -> TransactionResponse:
    try:
        transaction = service.confirm_deposit(reference, success=payload.success)
    except DomainException as e:
        handle_domain_exception(e)
    return TransactionResponse.from_transaction(transaction)


@router.get("/{user_id}", response_model=WalletBalanceResponse)
def get_wallet(
    user_id: str,
    service: WalletService = Depends(get_wallet_service),
) -> WalletBalanceResponse:
    return WalletBalanceResponse(
        user_id=user_id, balance=service.get_balance(user_id), currency=settings.currency
    )


@router.get("/{user_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: WalletService = Depends(get_wallet_service),
) -> TransactionListResponse:
    try:
        items = service.list_transactions(user_id, limit=limit, offset=offset)
    except DomainException as e:
        handle_domain_exception(e)
    return TransactionListResponse(
        items=[TransactionResponse.from_transaction(t) for t in items],
        limit=limit,
        offset=offset,
    )


@router.post(
    "/{user_id}/deposits",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def initiate_deposit(
    user_id: str,
    payload: DepositRequest,
    service: WalletService = Depends(get_wallet_service),
) -> TransactionResponse:
    try:
        transaction = service.initiate_deposit(user_id, payload.amount, reference=payload.reference)
    except DomainException as e:
        handle_domain_exception(e)
    return TransactionResponse.from_transaction(transaction)


@router.post(
    "/{user_id}/withdrawals",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def withdraw(
    user_id: str,
    payload: WithdrawalRequest,
    service: WalletService = Depends(get_wallet_service),
) -> TransactionResponse:
    try:
        transaction = service.withdraw(user_id, payload.amount, reference=payload.reference)
    except DomainException as e:
        handle_domain_exception(e)
    return TransactionResponse.from_transaction(transaction)

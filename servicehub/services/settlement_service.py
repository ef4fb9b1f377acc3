# servicehub/services/settlement_service.py
"""
Payment Settlement Engine.

Executes one settlement step (a full payment or one half-plan installment)
as a single store transaction:

    replay check -> balance check -> transaction row -> payer debit and
    payee credit (in user_id order) -> booking flags/status -> outbox
    events -> commit

Any failure before the commit rolls everything back, so either the whole
step is visible or none of it is. ``reference`` is the idempotency key:
settling the same reference twice moves money once.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, PaymentStage, TransactionStatus, TransactionType
from ..core.exceptions import (
    ConflictException,
    DomainException,
    InsufficientFundsException,
    LedgerWriteException,
    RepositoryException,
    StateConflictException,
)
from ..core.ulid_helper import generate_reference
from ..domain.installments import installment_amount, next_payment_stage, status_after
from ..domain.snapshot import BookingSnapshot
from ..events.booking_events import BookingStatusChanged, PaymentCompleted
from ..events.publisher import EventPublisher
from ..models.wallet import Transaction
from ..monitoring.prometheus_metrics import PrometheusMetrics
from ..repositories.base_repository import DuplicateRecordException
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    reference: str
    booking_id: str
    stage: PaymentStage
    amount: int
    new_status: BookingStatus
    replayed: bool = False
    payer_balance: Optional[int] = None
    event_ids: Tuple[str, ...] = field(default=())


class PaymentSettlementService(BaseService):
    """Moves one installment from the payer's wallet to the payee's wallet."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.wallet_repository = RepositoryFactory.create_wallet_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.event_publisher = EventPublisher(RepositoryFactory.create_event_outbox_repository(db))

    @BaseService.measure_operation("settle_payment")
    def settle(
        self,
        booking: BookingSnapshot,
        payer_wallet_id: str,
        payee_wallet_id: str,
        reference: Optional[str] = None,
    ) -> SettlementResult:
        """
        Settle the installment currently owed on ``booking``.

        The caller has already checked ``can_pay`` against the snapshot; the
        booking update here re-checks status and flags in its WHERE clause,
        so a snapshot that went stale loses with StateConflictException and
        no money moves.

        Raises:
            InsufficientFundsException: payer wallet cannot cover the installment
            StateConflictException: booking changed since the snapshot was taken
            ConflictException: ``reference`` already belongs to another booking
            LedgerWriteException: store failure; retry with the same reference
        """
        if reference is None:
            reference = generate_reference()
        else:
            # A settled reference replays even when the snapshot already shows it paid.
            replay = self._lookup_replay(reference, booking.id)
            if replay is not None:
                return replay

        stage = next_payment_stage(booking)
        if stage is None:
            raise StateConflictException(
                "This booking has already been paid in full",
                booking_id=booking.id,
                expected_status=booking.status.value,
            )
        amount = installment_amount(booking.amount, booking.payment_plan, stage)
        target = status_after(stage, booking.status)

        try:
            available = self.wallet_repository.get_balance(payer_wallet_id)
            if available < amount:
                raise InsufficientFundsException(required_amount=amount, available_amount=available)

            self.wallet_repository.create_transaction(
                reference=reference,
                amount=amount,
                type=TransactionType.PAYMENT,
                status=TransactionStatus.COMPLETED,
                payer_id=payer_wallet_id,
                payee_id=payee_wallet_id,
                booking_id=booking.id,
                metadata={
                    "service_name": booking.service_name,
                    "payer_name": self.user_repository.get_display_name(payer_wallet_id),
                    "payee_name": self.user_repository.get_display_name(payee_wallet_id),
                    "payment_type": stage.value,
                },
            )

            self._move_funds(payer_wallet_id, payee_wallet_id, amount)

            if not self.booking_repository.apply_payment(booking.id, booking.status, stage, target):
                raise StateConflictException(
                    booking_id=booking.id, expected_status=booking.status.value
                )

            event_ids = self._publish_events(
                booking, payer_wallet_id, payee_wallet_id, reference, amount, stage, target
            )
            payer_balance = self.wallet_repository.get_balance(payer_wallet_id)
            self.db.commit()
        except DuplicateRecordException:
            # Lost an insert race on the same reference: the other attempt settled it.
            self.db.rollback()
            replay = self.find_replay(reference, booking.id)
            if replay is None:
                raise LedgerWriteException(reference, "duplicate reference could not be reloaded")
            return replay
        except InsufficientFundsException:
            self.db.rollback()
            PrometheusMetrics.record_settlement(stage.value, "insufficient_funds")
            raise
        except StateConflictException:
            self.db.rollback()
            PrometheusMetrics.record_settlement(stage.value, "conflict")
            self.logger.info(
                "Settlement %s for booking %s lost to a concurrent change",
                reference,
                booking.id,
            )
            raise
        except DomainException:
            self.db.rollback()
            raise
        except (SQLAlchemyError, RepositoryException) as exc:
            self.db.rollback()
            PrometheusMetrics.record_settlement(stage.value, "ledger_error")
            self.logger.error(
                "Ledger write failed for settlement %s on booking %s: %s",
                reference,
                booking.id,
                exc,
            )
            raise LedgerWriteException(reference, type(exc).__name__) from exc

        PrometheusMetrics.record_settlement(stage.value, "settled", amount)
        self.log_operation(
            "settle_payment",
            booking_id=booking.id,
            reference=reference,
            stage=stage.value,
            amount=amount,
            new_status=target.value,
        )
        return SettlementResult(
            reference=reference,
            booking_id=booking.id,
            stage=stage,
            amount=amount,
            new_status=target,
            payer_balance=payer_balance,
            event_ids=tuple(event_ids),
        )

    def _move_funds(self, payer_id: str, payee_id: str, amount: int) -> None:
        # Wallet rows are locked in user_id order so opposing settlements cannot deadlock.
        for user_id, is_credit in sorted([(payer_id, False), (payee_id, True)]):
            if is_credit:
                self.wallet_repository.increment(user_id, amount)
            elif not self.wallet_repository.decrement_if_sufficient(user_id, amount):
                # Another debit committed between the balance read and ours.
                raise InsufficientFundsException(
                    required_amount=amount,
                    available_amount=self.wallet_repository.get_balance(user_id),
                )

    def _lookup_replay(self, reference: str, booking_id: str) -> Optional[SettlementResult]:
        try:
            replay = self.find_replay(reference, booking_id)
        except DomainException:
            self.db.rollback()
            raise
        except (SQLAlchemyError, RepositoryException) as exc:
            self.db.rollback()
            self.logger.error("Replay lookup failed for %s: %s", reference, exc)
            raise LedgerWriteException(reference, type(exc).__name__) from exc
        if replay is not None:
            self.db.rollback()
        return replay

    def find_replay(self, reference: str, booking_id: str) -> Optional[SettlementResult]:
        """
        Return the recorded outcome of ``reference`` if it already settled.

        A reference recorded against a different booking (or not as a
        payment) is a conflict, never a replay.
        """
        existing = self.wallet_repository.get_by_reference(reference)
        if existing is None:
            return None
        if existing.type != TransactionType.PAYMENT.value or existing.booking_id != booking_id:
            raise ConflictException(
                "Payment reference is already in use",
                code="REFERENCE_CONFLICT",
                details={"reference": reference, "booking_id": booking_id},
            )
        PrometheusMetrics.record_settlement(existing.payment_stage or "unknown", "replayed")
        self.logger.info("Replaying settled reference %s for booking %s", reference, booking_id)
        return self._result_from_transaction(existing, booking_id)

    def _result_from_transaction(self, existing: Transaction, booking_id: str) -> SettlementResult:
        booking = self.booking_repository.get_fresh(booking_id)
        return SettlementResult(
            reference=existing.reference,
            booking_id=booking_id,
            stage=PaymentStage(existing.payment_stage),
            amount=int(existing.amount),
            new_status=BookingStatus(booking.status) if booking else BookingStatus.PENDING,
            replayed=True,
        )

    def _publish_events(
        self,
        booking: BookingSnapshot,
        payer_id: str,
        payee_id: str,
        reference: str,
        amount: int,
        stage: PaymentStage,
        target: BookingStatus,
    ) -> list[str]:
        now = datetime.now(timezone.utc)
        event_ids = [
            self.event_publisher.publish(
                PaymentCompleted(
                    booking_id=booking.id,
                    reference=reference,
                    amount=amount,
                    stage=stage.value,
                    payer_id=payer_id,
                    payee_id=payee_id,
                    occurred_at=now,
                )
            )
        ]
        if target is not booking.status:
            event_ids.append(
                self.event_publisher.publish(
                    BookingStatusChanged(
                        booking_id=booking.id,
                        previous_status=booking.status.value,
                        new_status=target.value,
                        actor_id=payer_id,
                        occurred_at=now,
                    )
                )
            )
        return event_ids

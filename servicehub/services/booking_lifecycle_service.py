# servicehub/services/booking_lifecycle_service.py
"""
Booking Lifecycle Manager.

Owns the booking state machine. Every intent follows the same steps:

1. Load a snapshot and resolve the payee through the provider directory
2. Ask the eligibility evaluator for a verdict (raises on denial)
3. Issue one conditional update; a lost race raises StateConflictException
4. Commit the outbox events with the mutation
5. Hand the events to the notification dispatcher, best-effort

The acting identity is always an explicit argument.
"""

from datetime import datetime, timezone
import logging
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingGroup, BookingStatus, PaymentPlan
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from ..domain.eligibility import (
    can_accept,
    can_cancel,
    can_mark_done,
    can_pay,
    can_reject,
)
from ..domain.snapshot import BookingSnapshot
from ..events.booking_events import BookingStatusChanged
from ..events.dispatcher import NotificationDispatcher
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import PrometheusMetrics
from ..repositories.factory import RepositoryFactory
from ..repositories.provider_repository import ProviderResolver
from .base import BaseService
from .outbox_dispatch_service import OutboxDispatchService
from .settlement_service import PaymentSettlementService, SettlementResult

logger = logging.getLogger(__name__)


class BookingLifecycleService(BaseService):
    """Service layer for booking transitions and payments."""

    def __init__(
        self,
        db: Session,
        provider_resolver: Optional[ProviderResolver] = None,
        notification_dispatcher: Optional[NotificationDispatcher] = None,
        settlement_service: Optional[PaymentSettlementService] = None,
        dispatch_inline: Optional[bool] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.provider_resolver: ProviderResolver = (
            provider_resolver or RepositoryFactory.create_provider_repository(db)
        )
        self.settlement_service = settlement_service or PaymentSettlementService(db)
        self.event_publisher = EventPublisher(RepositoryFactory.create_event_outbox_repository(db))
        self.outbox_dispatch = OutboxDispatchService(db, notification_dispatcher)
        self.dispatch_inline = (
            settings.dispatch_notifications_inline if dispatch_inline is None else dispatch_inline
        )

    # Creation and reads

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        payer_id: str,
        provider_id: str,
        service_name: str,
        amount: int,
        payment_plan: PaymentPlan | str = PaymentPlan.FULL_UPFRONT,
    ) -> Booking:
        if not service_name or not service_name.strip():
            raise ValidationException("Service name is required", code="SERVICE_NAME_REQUIRED")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationException(
                "Amount must be a positive whole number of minor units",
                code="INVALID_AMOUNT",
                details={"amount": amount},
            )
        try:
            plan = PaymentPlan(payment_plan)
        except ValueError:
            raise ValidationException(
                f"Unknown payment plan: {payment_plan}",
                code="INVALID_PAYMENT_PLAN",
            )

        if not self.user_repository.exists(id=payer_id):
            raise NotFoundException("User not found", code="USER_NOT_FOUND", details={"user_id": payer_id})
        provider_user_id = self.provider_resolver.resolve_provider_user_id(provider_id)
        if provider_user_id == payer_id:
            raise ValidationException(
                "You cannot book your own service", code="SELF_BOOKING_NOT_ALLOWED"
            )

        with self.transaction():
            booking = self.booking_repository.create_booking(
                payer_id=payer_id,
                provider_id=provider_id,
                service_name=service_name.strip(),
                amount=amount,
                payment_plan=plan,
            )
            event_ids = [
                self.event_publisher.publish(
                    BookingStatusChanged(
                        booking_id=booking.id,
                        previous_status=None,
                        new_status=BookingStatus.PENDING.value,
                        actor_id=payer_id,
                        occurred_at=datetime.now(timezone.utc),
                    )
                )
            ]
        self.log_operation("create_booking", booking_id=booking.id, payer_id=payer_id)
        self._dispatch_after_commit(event_ids)
        return booking

    def get_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Return the booking if ``actor_id`` is its payer, provider or payee."""
        booking = self._get_or_404(booking_id)
        if actor_id in (booking.payer_id, booking.provider_id):
            return booking
        if actor_id == self.provider_resolver.resolve_provider_user_id(booking.provider_id):
            return booking
        raise ForbiddenException(
            "You are not a party to this booking",
            code="NOT_AUTHORIZED",
            details={"booking_id": booking_id},
        )

    def list_bookings(
        self,
        actor_id: str,
        *,
        as_provider: bool = False,
        group: Optional[BookingGroup | str] = None,
    ) -> List[Booking]:
        statuses = BookingGroup(group).statuses() if group is not None else None
        if as_provider:
            return self.booking_repository.list_for_provider(actor_id, statuses)
        return self.booking_repository.list_for_payer(actor_id, statuses)

    # Provider-side transitions

    @BaseService.measure_operation("accept_booking")
    def accept(self, booking_id: str, acting_provider_id: str) -> Booking:
        snapshot = self._load_snapshot(booking_id)
        can_accept(snapshot, acting_provider_id).raise_if_denied()
        return self._apply_transition(
            snapshot,
            BookingStatus.ACCEPTED,
            actor_id=snapshot.payee_id,
            write=lambda: self.booking_repository.transition_status(
                booking_id,
                BookingStatus.PENDING,
                BookingStatus.ACCEPTED,
                actor_is_provider=True,
            ),
        )

    @BaseService.measure_operation("reject_booking")
    def reject(
        self, booking_id: str, acting_provider_id: str, reason: Optional[str] = None
    ) -> Booking:
        snapshot = self._load_snapshot(booking_id)
        can_reject(snapshot, acting_provider_id).raise_if_denied()
        actor_user_id = snapshot.payee_id or acting_provider_id
        clean_reason = reason.strip() if reason and reason.strip() else None
        return self._apply_transition(
            snapshot,
            BookingStatus.CANCELLED,
            actor_id=actor_user_id,
            reason=clean_reason,
            write=lambda: self.booking_repository.cancel_booking(
                booking_id,
                BookingStatus.PENDING,
                cancelled_by=actor_user_id,
                reason=clean_reason,
                actor_is_provider=True,
            ),
        )

    @BaseService.measure_operation("mark_booking_done")
    def mark_done(self, booking_id: str, acting_provider_id: str) -> Booking:
        snapshot = self._load_snapshot(booking_id)
        can_mark_done(snapshot, acting_provider_id).raise_if_denied()
        return self._apply_transition(
            snapshot,
            BookingStatus.COMPLETED,
            actor_id=snapshot.payee_id,
            write=lambda: self.booking_repository.transition_status(
                booking_id,
                BookingStatus.IN_PROGRESS,
                BookingStatus.COMPLETED,
                actor_is_provider=True,
                extra_conditions=(
                    Booking.first_payment_completed.is_(True),
                    Booking.final_payment_completed.is_(True),
                ),
            ),
        )

    # Payer-side transitions

    @BaseService.measure_operation("pay_booking")
    def pay(
        self, booking_id: str, acting_user_id: str, reference: Optional[str] = None
    ) -> SettlementResult:
        """
        Settle the next installment owed on the booking.

        The resulting status comes from the plan and the installment that
        cleared; callers never choose it. Retrying with the same
        ``reference`` returns the original result without moving money.
        """
        snapshot = self._load_snapshot(booking_id)
        if reference is not None and acting_user_id == snapshot.payer_id:
            replay = self.settlement_service.find_replay(reference, booking_id)
            if replay is not None:
                return replay
        can_pay(snapshot, acting_user_id).raise_if_denied()

        result = self.settlement_service.settle(
            snapshot,
            payer_wallet_id=snapshot.payer_id,
            payee_wallet_id=snapshot.payee_id or "",
            reference=reference,
        )
        if not result.replayed and result.new_status is not snapshot.status:
            PrometheusMetrics.record_booking_transition(result.new_status.value, applied=True)
        self._dispatch_after_commit(result.event_ids)
        return result

    @BaseService.measure_operation("cancel_booking")
    def cancel(self, booking_id: str, acting_user_id: str, reason: str) -> Booking:
        if not reason or not reason.strip():
            raise ValidationException(
                "A cancellation reason is required", code="CANCELLATION_REASON_REQUIRED"
            )
        snapshot = self._load_snapshot(booking_id)
        can_cancel(snapshot, acting_user_id).raise_if_denied()
        clean_reason = reason.strip()
        return self._apply_transition(
            snapshot,
            BookingStatus.CANCELLED,
            actor_id=acting_user_id,
            reason=clean_reason,
            write=lambda: self.booking_repository.cancel_booking(
                booking_id,
                snapshot.status,
                cancelled_by=acting_user_id,
                reason=clean_reason,
                actor_is_provider=False,
                require_unpaid_half_plan=True,
            ),
        )

    @BaseService.measure_operation("mark_bookings_viewed")
    def mark_viewed(self, actor_id: str, *, as_provider: bool = False) -> int:
        """Clear the unseen-changes badge on every booking of one side. Not a transition."""
        with self.transaction():
            if as_provider:
                return self.booking_repository.mark_viewed(provider_id=actor_id)
            return self.booking_repository.mark_viewed(payer_id=actor_id)

    # Helpers

    def _get_or_404(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_fresh(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    def _load_snapshot(self, booking_id: str) -> BookingSnapshot:
        booking = self._get_or_404(booking_id)
        payee_id = self.provider_resolver.resolve_provider_user_id(booking.provider_id)
        return BookingSnapshot.from_model(booking, payee_id=payee_id)

    def _apply_transition(
        self,
        snapshot: BookingSnapshot,
        target: BookingStatus,
        *,
        actor_id: Optional[str],
        write: Callable[[], bool],
        reason: Optional[str] = None,
    ) -> Booking:
        with self.transaction():
            applied = write()
            PrometheusMetrics.record_booking_transition(target.value, applied)
            if not applied:
                raise StateConflictException(
                    booking_id=snapshot.id, expected_status=snapshot.status.value
                )
            event_ids = [
                self.event_publisher.publish(
                    BookingStatusChanged(
                        booking_id=snapshot.id,
                        previous_status=snapshot.status.value,
                        new_status=target.value,
                        actor_id=actor_id,
                        occurred_at=datetime.now(timezone.utc),
                        reason=reason,
                    )
                )
            ]
        self.log_operation(
            "booking_transition",
            booking_id=snapshot.id,
            previous_status=snapshot.status.value,
            new_status=target.value,
            actor_id=actor_id,
        )
        self._dispatch_after_commit(event_ids)
        return self._get_or_404(snapshot.id)

    def _dispatch_after_commit(self, event_ids: Sequence[str]) -> None:
        if not self.dispatch_inline or not event_ids:
            return
        try:
            self.outbox_dispatch.dispatch(event_ids)
        except Exception as exc:
            # Delivery is retried from the outbox; the committed outcome stands.
            self.logger.error("Post-commit notification dispatch failed: %s", exc)

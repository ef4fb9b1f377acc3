# servicehub/repositories/booking_repository.py
"""
Booking Repository

Every status or payment-flag change is a single conditional UPDATE
(``... WHERE id = :id AND status = :expected``). The returned row count
tells the service whether it won the race; a zero means someone else moved
the booking first and nothing was written.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy import ColumnElement, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, PaymentPlan, PaymentStage
from ..core.exceptions import RepositoryException
from ..domain.booking_state import ensure_transition
from ..domain.installments import flags_after
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class BookingRepository(BaseRepository[Booking]):
    """Booking store: reads plus compare-and-swap writes."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def create_booking(
        self,
        *,
        payer_id: str,
        provider_id: str,
        service_name: str,
        amount: int,
        payment_plan: PaymentPlan,
    ) -> Booking:
        return self.create(
            payer_id=payer_id,
            provider_id=provider_id,
            service_name=service_name,
            amount=amount,
            payment_plan=payment_plan.value,
            status=BookingStatus.PENDING.value,
            first_payment_completed=False,
            final_payment_completed=False,
            payer_viewed=True,
            provider_viewed=False,
        )

    def get_fresh(self, booking_id: str) -> Optional[Booking]:
        """Load a booking, overwriting any stale copy held by the session."""
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.id == booking_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}") from e

    # Conditional writes

    def transition_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        *,
        actor_is_provider: bool,
        extra_conditions: Sequence[ColumnElement[bool]] = (),
        **values: Any,
    ) -> bool:
        """
        Move ``booking_id`` from ``expected`` to ``target``.

        Returns False (and writes nothing) when the row is no longer in
        ``expected`` or fails ``extra_conditions``.
        """
        ensure_transition(expected, target)
        now = _now_utc()
        values.setdefault("updated_at", now)
        if target is BookingStatus.ACCEPTED:
            values.setdefault("accepted_at", now)
        if target is BookingStatus.COMPLETED:
            values.setdefault("completed_at", now)
        values.update(self._viewed_reset(actor_is_provider))
        return self._compare_and_set(
            booking_id,
            [Booking.status == expected.value, *extra_conditions],
            status=target.value,
            **values,
        )

    def cancel_booking(
        self,
        booking_id: str,
        expected: BookingStatus,
        *,
        cancelled_by: str,
        reason: Optional[str],
        actor_is_provider: bool,
        require_unpaid_half_plan: bool = False,
    ) -> bool:
        """
        Cancel with audit trail, conditioned on the expected status.

        ``require_unpaid_half_plan`` adds the half-plan lock to the WHERE
        clause so a first installment committing concurrently wins.
        """
        conditions: List[ColumnElement[bool]] = []
        if require_unpaid_half_plan:
            conditions.append(
                or_(
                    Booking.payment_plan != PaymentPlan.HALF.value,
                    Booking.first_payment_completed.is_(False),
                )
            )
        if expected is not BookingStatus.IN_PROGRESS:
            conditions.append(Booking.first_payment_completed.is_(False))
        now = _now_utc()
        return self.transition_status(
            booking_id,
            expected,
            BookingStatus.CANCELLED,
            actor_is_provider=actor_is_provider,
            extra_conditions=conditions,
            cancelled_at=now,
            cancelled_by=cancelled_by,
            cancellation_reason=reason,
        )

    def apply_payment(
        self,
        booking_id: str,
        expected: BookingStatus,
        stage: PaymentStage,
        target: BookingStatus,
    ) -> bool:
        """
        Record that ``stage`` cleared and move the booking to ``target``.

        The WHERE clause re-checks the flags the stage depends on, so two
        settlements of the same installment can never both apply.
        """
        flags = flags_after(stage)
        if stage is PaymentStage.FINAL_PAYMENT:
            conditions = [
                Booking.first_payment_completed.is_(True),
                Booking.final_payment_completed.is_(False),
            ]
        else:
            conditions = [Booking.first_payment_completed.is_(False)]

        values: dict[str, Any] = {
            "first_payment_completed": flags.first_payment_completed,
            "final_payment_completed": flags.final_payment_completed,
        }
        if target is expected:
            values["updated_at"] = _now_utc()
            values.update(self._viewed_reset(actor_is_provider=False))
            return self._compare_and_set(
                booking_id,
                [Booking.status == expected.value, *conditions],
                **values,
            )
        return self.transition_status(
            booking_id,
            expected,
            target,
            actor_is_provider=False,
            extra_conditions=conditions,
            **values,
        )

    def mark_viewed(
        self, *, payer_id: Optional[str] = None, provider_id: Optional[str] = None
    ) -> int:
        """Clear the unseen-changes badge for one side; returns rows changed."""
        if (payer_id is None) == (provider_id is None):
            raise ValueError("Pass exactly one of payer_id or provider_id")
        if payer_id is not None:
            stmt = (
                update(Booking)
                .where(Booking.payer_id == payer_id, Booking.payer_viewed.is_(False))
                .values(payer_viewed=True)
            )
        else:
            stmt = (
                update(Booking)
                .where(Booking.provider_id == provider_id, Booking.provider_viewed.is_(False))
                .values(provider_viewed=True)
            )
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            self.logger.error(f"Error marking bookings viewed: {str(e)}")
            raise RepositoryException(f"Failed to mark bookings viewed: {str(e)}") from e
        self.db.expire_all()
        return int(result.rowcount or 0)

    # Reads

    def list_for_payer(
        self, payer_id: str, statuses: Optional[Iterable[BookingStatus]] = None
    ) -> List[Booking]:
        return self._list(Booking.payer_id == payer_id, statuses)

    def list_for_provider(
        self, provider_id: str, statuses: Optional[Iterable[BookingStatus]] = None
    ) -> List[Booking]:
        return self._list(Booking.provider_id == provider_id, statuses)

    def count_unviewed(self, *, payer_id: Optional[str] = None, provider_id: Optional[str] = None) -> int:
        if payer_id is not None:
            return self.count(payer_id=payer_id, payer_viewed=False)
        return self.count(provider_id=provider_id, provider_viewed=False)

    # Helpers

    def _list(
        self, party_filter: ColumnElement[bool], statuses: Optional[Iterable[BookingStatus]]
    ) -> List[Booking]:
        try:
            query = self.db.query(Booking).filter(party_filter)
            if statuses is not None:
                query = query.filter(Booking.status.in_([s.value for s in statuses]))
            return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    @staticmethod
    def _viewed_reset(actor_is_provider: bool) -> dict[str, bool]:
        # The acting side has seen its own change; the other side gets a badge.
        if actor_is_provider:
            return {"payer_viewed": False, "provider_viewed": True}
        return {"payer_viewed": True, "provider_viewed": False}

    def _compare_and_set(
        self, booking_id: str, conditions: Sequence[ColumnElement[bool]], **values: Any
    ) -> bool:
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}") from e

        won = result.rowcount == 1
        if won:
            self._expire_loaded(booking_id)
        else:
            self.logger.info(
                "Conditional update lost for booking %s",
                booking_id,
                extra={"booking_id": booking_id, "values": sorted(values)},
            )
        return won

    def _expire_loaded(self, booking_id: str) -> None:
        key = self.db.identity_key(Booking, booking_id)
        instance = self.db.identity_map.get(key)
        if instance is not None:
            self.db.expire(instance)

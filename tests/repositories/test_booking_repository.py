import pytest

from servicehub.core.enums import BookingStatus, PaymentPlan, PaymentStage
from servicehub.domain.booking_state import InvalidTransitionException
from servicehub.repositories.booking_repository import BookingRepository
from tests.factories import create_booking


@pytest.fixture
def repo(db):
    return BookingRepository(db)


def test_create_booking_starts_pending_and_unseen_by_provider(db, repo, parties):
    booking = repo.create_booking(
        payer_id=parties.payer.id,
        provider_id=parties.provider.id,
        service_name="Gutter cleaning",
        amount=4200,
        payment_plan=PaymentPlan.HALF,
    )
    db.commit()
    assert booking.status == BookingStatus.PENDING.value
    assert booking.payer_viewed is True
    assert booking.provider_viewed is False


def test_transition_applies_when_status_matches(db, repo, parties):
    booking = create_booking(db, parties)
    assert repo.transition_status(
        booking.id, BookingStatus.PENDING, BookingStatus.ACCEPTED, actor_is_provider=True
    )
    db.commit()
    fresh = repo.get_fresh(booking.id)
    assert fresh.status == BookingStatus.ACCEPTED.value
    assert fresh.accepted_at is not None
    assert fresh.payer_viewed is False
    assert fresh.provider_viewed is True


def test_transition_is_noop_when_status_moved(db, repo, parties):
    booking = create_booking(db, parties, status=BookingStatus.ACCEPTED)
    assert not repo.transition_status(
        booking.id, BookingStatus.PENDING, BookingStatus.ACCEPTED, actor_is_provider=True
    )
    assert repo.get_fresh(booking.id).status == BookingStatus.ACCEPTED.value


def test_transition_refuses_edges_outside_the_state_machine(db, repo, parties):
    booking = create_booking(db, parties)
    with pytest.raises(InvalidTransitionException):
        repo.transition_status(
            booking.id, BookingStatus.PENDING, BookingStatus.COMPLETED, actor_is_provider=True
        )


def test_cancel_records_audit_trail(db, repo, parties):
    booking = create_booking(db, parties, status=BookingStatus.ACCEPTED)
    assert repo.cancel_booking(
        booking.id,
        BookingStatus.ACCEPTED,
        cancelled_by=parties.payer.id,
        reason="Plans changed",
        actor_is_provider=False,
        require_unpaid_half_plan=True,
    )
    db.commit()
    fresh = repo.get_fresh(booking.id)
    assert fresh.status == BookingStatus.CANCELLED.value
    assert fresh.cancelled_by == parties.payer.id
    assert fresh.cancellation_reason == "Plans changed"
    assert fresh.cancelled_at is not None


def test_cancel_blocked_once_half_plan_first_installment_recorded(db, repo, parties):
    booking = create_booking(
        db,
        parties,
        plan=PaymentPlan.HALF,
        status=BookingStatus.IN_PROGRESS,
        first_payment_completed=True,
    )
    assert not repo.cancel_booking(
        booking.id,
        BookingStatus.IN_PROGRESS,
        cancelled_by=parties.payer.id,
        reason="late",
        actor_is_provider=False,
        require_unpaid_half_plan=True,
    )


def test_apply_payment_same_stage_only_once(db, repo, parties):
    booking = create_booking(db, parties, plan=PaymentPlan.HALF, status=BookingStatus.ACCEPTED)
    assert repo.apply_payment(
        booking.id, BookingStatus.ACCEPTED, PaymentStage.FIRST_PAYMENT, BookingStatus.IN_PROGRESS
    )
    db.commit()
    # A second settlement of the first installment against the new status still loses
    assert not repo.apply_payment(
        booking.id, BookingStatus.IN_PROGRESS, PaymentStage.FIRST_PAYMENT, BookingStatus.IN_PROGRESS
    )
    fresh = repo.get_fresh(booking.id)
    assert fresh.first_payment_completed is True
    assert fresh.final_payment_completed is False


def test_final_payment_requires_first(db, repo, parties):
    booking = create_booking(db, parties, plan=PaymentPlan.HALF, status=BookingStatus.IN_PROGRESS)
    assert not repo.apply_payment(
        booking.id, BookingStatus.IN_PROGRESS, PaymentStage.FINAL_PAYMENT, BookingStatus.COMPLETED
    )


def test_mark_viewed_and_lists(db, repo, parties):
    first = create_booking(db, parties)
    create_booking(db, parties, status=BookingStatus.CANCELLED)
    assert repo.count_unviewed(provider_id=parties.provider.id) == 2
    assert repo.mark_viewed(provider_id=parties.provider.id) == 2
    db.commit()
    assert repo.count_unviewed(provider_id=parties.provider.id) == 0

    active = repo.list_for_payer(parties.payer.id, [BookingStatus.PENDING])
    assert [b.id for b in active] == [first.id]
    assert len(repo.list_for_provider(parties.provider.id)) == 2


def test_mark_viewed_requires_exactly_one_side(repo):
    with pytest.raises(ValueError):
        repo.mark_viewed()

import pytest

from servicehub.core.enums import BookingStatus, PaymentPlan
from servicehub.core.exceptions import ForbiddenException, StateConflictException
from servicehub.domain.eligibility import (
    Denial,
    can_accept,
    can_cancel,
    can_mark_done,
    can_pay,
    can_reject,
    can_report,
    can_review,
)
from servicehub.domain.snapshot import BookingSnapshot

PAYER = "payer-user"
PROVIDER = "provider-record"
PAYEE = "provider-user"


def booking(status=BookingStatus.PENDING, plan=PaymentPlan.FULL_UPFRONT, first=False, final=False):
    return BookingSnapshot(
        id="booking-1",
        payer_id=PAYER,
        provider_id=PROVIDER,
        status=status,
        payment_plan=plan,
        amount=10000,
        first_payment_completed=first,
        final_payment_completed=final,
        payee_id=PAYEE,
    )


class TestCanCancel:
    @pytest.mark.parametrize(
        "status", [BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS]
    )
    def test_payer_can_cancel_unpaid_half_plan(self, status):
        assert can_cancel(booking(status, PaymentPlan.HALF), PAYER)

    def test_half_plan_locks_after_first_installment(self):
        verdict = can_cancel(booking(BookingStatus.IN_PROGRESS, PaymentPlan.HALF, first=True), PAYER)
        assert not verdict
        assert verdict.denial is Denial.PAYMENT_LOCKED

    def test_full_upfront_in_progress_still_cancellable(self):
        paid = booking(BookingStatus.IN_PROGRESS, PaymentPlan.FULL_UPFRONT, first=True, final=True)
        assert can_cancel(paid, PAYER)

    def test_paid_accepted_booking_cannot_be_cancelled(self):
        verdict = can_cancel(booking(BookingStatus.ACCEPTED, first=True, final=True), PAYER)
        assert verdict.denial is Denial.PAYMENT_LOCKED

    @pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_status_denied(self, status):
        assert can_cancel(booking(status), PAYER).denial is Denial.INVALID_STATUS

    def test_provider_cannot_use_payer_cancel(self):
        verdict = can_cancel(booking(), PAYEE)
        assert verdict.denial is Denial.NOT_PAYER
        with pytest.raises(ForbiddenException):
            verdict.raise_if_denied()


class TestCanPay:
    def test_pending_booking_not_payable(self):
        verdict = can_pay(booking(BookingStatus.PENDING), PAYER)
        assert verdict.denial is Denial.INVALID_STATUS
        with pytest.raises(StateConflictException):
            verdict.raise_if_denied()

    def test_accepted_booking_payable_by_payer_only(self):
        assert can_pay(booking(BookingStatus.ACCEPTED), PAYER)
        assert can_pay(booking(BookingStatus.ACCEPTED), PAYEE).denial is Denial.NOT_PAYER

    def test_final_installment_payable_in_progress(self):
        assert can_pay(booking(BookingStatus.IN_PROGRESS, PaymentPlan.HALF, first=True), PAYER)

    def test_nothing_due_once_fully_paid(self):
        paid = booking(BookingStatus.IN_PROGRESS, first=True, final=True)
        assert can_pay(paid, PAYER).denial is Denial.NOTHING_DUE


class TestCanReview:
    def test_completed_booking_reviewable_once(self):
        done = booking(BookingStatus.COMPLETED, first=True, final=True)
        assert can_review(done, PAYER)
        assert can_review(done, PAYER, has_existing_review=True).denial is Denial.ALREADY_REVIEWED

    def test_not_reviewable_before_completion(self):
        assert can_review(booking(BookingStatus.IN_PROGRESS), PAYER).denial is Denial.INVALID_STATUS

    def test_only_payer_reviews(self):
        done = booking(BookingStatus.COMPLETED, first=True, final=True)
        assert can_review(done, PAYEE).denial is Denial.NOT_PAYER


def test_can_report_either_party_by_resolved_payee():
    b = booking()
    assert can_report(b, PAYER)
    assert can_report(b, PAYEE)
    # The provider record id is not a user and cannot act as the payee
    assert can_report(b, PROVIDER).denial is Denial.NOT_A_PARTY
    assert not can_report(b, "stranger")


def test_provider_gates():
    assert can_accept(booking(), PROVIDER)
    assert can_reject(booking(), PROVIDER)
    assert can_accept(booking(), "other-provider").denial is Denial.NOT_PROVIDER
    assert can_accept(booking(BookingStatus.ACCEPTED), PROVIDER).denial is Denial.INVALID_STATUS

    unpaid = booking(BookingStatus.IN_PROGRESS, PaymentPlan.HALF, first=True)
    assert can_mark_done(unpaid, PROVIDER).denial is Denial.PAYMENT_OUTSTANDING
    paid = booking(BookingStatus.IN_PROGRESS, first=True, final=True)
    assert can_mark_done(paid, PROVIDER)


def test_denied_verdict_carries_booking_id_in_exception():
    with pytest.raises(StateConflictException) as exc_info:
        can_pay(booking(BookingStatus.CANCELLED), PAYER).raise_if_denied()
    assert exc_info.value.details["booking_id"] == "booking-1"
    assert exc_info.value.details["denial"] == "invalid_status"

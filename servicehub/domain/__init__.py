"""Pure booking rules: state table, installment arithmetic, eligibility gates."""

from .booking_state import (
    BOOKING_TRANSITIONS,
    CANCELLABLE_STATUSES,
    InvalidTransitionException,
    can_transition,
    ensure_transition,
)
from .eligibility import (
    Denial,
    Verdict,
    can_accept,
    can_cancel,
    can_mark_done,
    can_pay,
    can_reject,
    can_report,
    can_review,
)
from .installments import (
    final_installment,
    first_installment,
    flags_after,
    installment_amount,
    next_payment_stage,
    status_after,
)
from .snapshot import BookingSnapshot

__all__ = [
    "BOOKING_TRANSITIONS",
    "CANCELLABLE_STATUSES",
    "BookingSnapshot",
    "Denial",
    "InvalidTransitionException",
    "Verdict",
    "can_accept",
    "can_cancel",
    "can_mark_done",
    "can_pay",
    "can_reject",
    "can_report",
    "can_review",
    "can_transition",
    "ensure_transition",
    "final_installment",
    "first_installment",
    "flags_after",
    "installment_amount",
    "next_payment_stage",
    "status_after",
]

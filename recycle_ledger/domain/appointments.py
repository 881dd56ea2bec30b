"""Appointment state machine - legal lifecycle transitions and their guards"""

from typing import Optional, Tuple

from recycle_ledger.domain.exceptions import (
    AlreadyCompletedError,
    AppointmentCancelledError,
    InvalidStateError,
    ValidationError,
)
from recycle_ledger.domain.models import AppointmentStatus, ReviewDecision

TERMINAL_STATES = frozenset(
    {AppointmentStatus.REJECTED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
)

MIN_REJECTION_REASON_LENGTH = 5


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATES


def review_transition(
    current: AppointmentStatus,
    decision: ReviewDecision,
    rejection_reason: Optional[str] = None,
    min_reason_length: int = MIN_REJECTION_REASON_LENGTH,
) -> Tuple[AppointmentStatus, Optional[str]]:
    """
    Resolve a pending appointment to approved or rejected.

    Returns the new (status, rejection_reason); the reason is set if and only
    if the new status is rejected.

    Raises:
        ValidationError: reject without a reason of the minimum length
        InvalidStateError: appointment already left pending
    """
    if decision == ReviewDecision.REJECT:
        reason = (rejection_reason or "").strip()
        if len(reason) < min_reason_length:
            raise ValidationError(
                f"Rejection reason is required and must be at least {min_reason_length} characters"
            )
    else:
        reason = None

    if current != AppointmentStatus.PENDING:
        raise InvalidStateError(current.value, decision.value)

    if decision == ReviewDecision.APPROVE:
        return AppointmentStatus.APPROVED, None
    return AppointmentStatus.REJECTED, reason


def completion_blocker(appointment_id: str, current: AppointmentStatus) -> Optional[Exception]:
    """Return the error that forbids completing the appointment, or None"""
    if current == AppointmentStatus.COMPLETED:
        return AlreadyCompletedError(appointment_id)
    if current == AppointmentStatus.CANCELLED:
        return AppointmentCancelledError(appointment_id)
    if current == AppointmentStatus.REJECTED:
        return InvalidStateError(current.value, "complete")
    return None


def ensure_can_cancel(current: AppointmentStatus) -> None:
    if is_terminal(current):
        raise InvalidStateError(current.value, "cancel")

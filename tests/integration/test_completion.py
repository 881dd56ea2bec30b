"""Integration tests for the appointment completion transaction"""

import pytest
from recycle_ledger.domain.exceptions import (
    AlreadyCompletedError,
    AppointmentCancelledError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from recycle_ledger.domain.models import AppointmentStatus, CreditTransactionKind, MaterialEntry
from recycle_ledger.services.appointments import AppointmentService
from recycle_ledger.services.completion import CompletionService
from recycle_ledger.services.credits import CreditsService


@pytest.fixture
def completions(store, clock):
    return CompletionService(store, clock=clock)


@pytest.fixture
def credits(store, clock):
    return CreditsService(store, clock=clock)


def appointment_status(store, appointment_id):
    return AppointmentService(store).get_appointment(appointment_id).status


def test_completion_settles_credits(store, completions, credits, make_user, make_appointment, submission, now):
    user_id = make_user(credits=20)
    appointment_id = make_appointment(user_id)

    result = completions.complete_appointment(appointment_id, submission)

    assert result.credits_awarded == 100
    assert result.new_balance == 120
    assert result.user_id == user_id
    assert result.completion.id == appointment_id
    assert result.completion.completed_at == now
    assert appointment_status(store, appointment_id) == AppointmentStatus.COMPLETED
    assert credits.get_user_credits(user_id).credits == 120


def test_completion_writes_audit_entry(completions, credits, make_user, make_appointment, submission):
    user_id = make_user()
    appointment_id = make_appointment(user_id)

    completions.complete_appointment(appointment_id, submission)

    history = credits.get_credit_history(user_id)
    assert len(history.transactions) == 1
    entry = history.transactions[0]
    assert entry.kind == CreditTransactionKind.EARNED
    assert entry.amount == 100
    assert entry.reference_id == appointment_id
    assert history.total_earned == 100
    assert history.current_credits == 100


def test_completion_record_is_stored(completions, make_user, make_appointment, submission_factory):
    user_id = make_user()
    appointment_id = make_appointment(user_id)
    submission = submission_factory(
        materials=[MaterialEntry(type="Metal", qty_kg=30), MaterialEntry(type="plastic", qty_kg=20),
                   MaterialEntry(type="GLASS", qty_kg=10)],
        total_weight_kg=60,
        container_count=6,
    )

    completions.complete_appointment(appointment_id, submission)
    completion = completions.get_completion(appointment_id)

    assert completion.credits_awarded == 1886
    assert completion.monetary_value == 78000
    assert [m.type.value for m in completion.materials] == ["metal", "plastic", "glass"]
    assert completion.photos == ["https://cdn.example.com/pickups/p1.jpg"]

    stats = completions.get_completion_stats(appointment_id)
    assert stats.material_type_count == 3
    assert stats.breakdown.base_credits == 1505
    assert stats.breakdown.total_credits == stats.credits_awarded


def test_pending_appointment_can_be_completed(completions, make_user, make_appointment, submission):
    user_id = make_user()
    appointment_id = make_appointment(user_id, status=AppointmentStatus.PENDING)

    assert completions.complete_appointment(appointment_id, submission).new_balance == 100


def test_double_completion_awards_once(completions, credits, make_user, make_appointment, submission):
    user_id = make_user()
    appointment_id = make_appointment(user_id)

    completions.complete_appointment(appointment_id, submission)
    with pytest.raises(AlreadyCompletedError):
        completions.complete_appointment(appointment_id, submission)

    assert credits.get_user_credits(user_id).credits == 100
    assert len(credits.get_credit_history(user_id).transactions) == 1


def test_cancelled_appointment_rejected(completions, credits, make_user, make_appointment, submission):
    user_id = make_user()
    appointment_id = make_appointment(user_id, status=AppointmentStatus.CANCELLED)

    with pytest.raises(AppointmentCancelledError):
        completions.complete_appointment(appointment_id, submission)

    assert credits.get_user_credits(user_id).credits == 0
    with pytest.raises(NotFoundError):
        completions.get_completion(appointment_id)


def test_rejected_appointment_cannot_be_completed(completions, make_user, make_appointment, submission):
    user_id = make_user()
    appointment_id = make_appointment(user_id, status=AppointmentStatus.REJECTED, rejection_reason="Out of area")

    with pytest.raises(InvalidStateError):
        completions.complete_appointment(appointment_id, submission)


def test_unknown_appointment(completions, submission):
    with pytest.raises(NotFoundError) as exc_info:
        completions.complete_appointment("missing", submission)
    assert exc_info.value.resource == "Appointment"


def test_invalid_submission_touches_nothing(store, completions, credits, make_user, make_appointment,
                                            submission_factory):
    user_id = make_user()
    appointment_id = make_appointment(user_id)

    with pytest.raises(ValidationError):
        completions.complete_appointment(appointment_id, submission_factory(total_weight_kg=100))

    assert appointment_status(store, appointment_id) == AppointmentStatus.APPROVED
    assert credits.get_user_credits(user_id).credits == 0


def test_invalid_submission_for_unknown_appointment_is_validation_error(completions, submission_factory):
    with pytest.raises(ValidationError):
        completions.complete_appointment("missing", submission_factory(photos=[]))


def test_missing_user_record_is_created(completions, credits, make_appointment, submission):
    appointment_id = make_appointment("user-without-profile")

    result = completions.complete_appointment(appointment_id, submission)

    assert result.new_balance == 100
    assert credits.get_user_credits("user-without-profile").credits == 100


def test_can_complete(completions, make_user, make_appointment):
    user_id = make_user()
    open_id = make_appointment(user_id)
    done_id = make_appointment(user_id, status=AppointmentStatus.COMPLETED)

    assert completions.can_complete(open_id).can_complete is True

    blocked = completions.can_complete(done_id)
    assert blocked.can_complete is False
    assert "already completed" in blocked.reason
    assert blocked.appointment.id == done_id

    missing = completions.can_complete("missing")
    assert missing.can_complete is False
    assert missing.appointment is None

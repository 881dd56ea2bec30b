"""Appointment completion transaction - evidence, state transition and credit settlement as one unit"""

from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from recycle_ledger.domain.appointments import completion_blocker
from recycle_ledger.domain.credits import DEFAULT_RULES, CreditRules, calculate_credits
from recycle_ledger.domain.exceptions import NotFoundError
from recycle_ledger.domain.models import (
    AppointmentStatus,
    CanComplete,
    CompletionResult,
    CompletionStats,
    CompletionSubmission,
    CreditTransactionKind,
)
from recycle_ledger.domain.validation import CompletionPolicy, validate_completion_submission
from recycle_ledger.infrastructure.database.ledger import LedgerStore
from recycle_ledger.infrastructure.database.models import AppointmentCompletionRecord
from recycle_ledger.infrastructure.database.repositories import (
    AppointmentRepository,
    CompletionRepository,
    CreditTransactionRepository,
    UserRepository,
    appointment_to_domain,
    completion_to_domain,
)
from recycle_ledger.utils.date_utils import utc_now


class CompletionService:
    """Completes appointments and settles the earned credits"""

    def __init__(
        self,
        store: LedgerStore,
        rules: CreditRules = DEFAULT_RULES,
        policy: CompletionPolicy = CompletionPolicy(),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.rules = rules
        self.policy = policy
        self.clock = clock

    def complete_appointment(self, appointment_id: str, submission: CompletionSubmission) -> CompletionResult:
        """
        Complete an appointment with evidence and credit the owning user.

        Flow:
        1. Validate the submission (no storage access on failure)
        2. Read appointment and owning user, all reads before any write
        3. Reject completed / cancelled / rejected appointments
        4. Compute the award (pure, safe to recompute on retry)
        5. Write completion, appointment state, audit entry and balance atomically

        A missing user record is created with a zero balance rather than
        failing the settlement.

        Raises:
            ValidationError, NotFoundError, AlreadyCompletedError,
            AppointmentCancelledError, InvalidStateError
        """
        materials = validate_completion_submission(submission, self.policy)
        calculation = calculate_credits(
            materials,
            submission.total_weight_kg,
            submission.container_count,
            self.rules,
        )

        def body(db: Session) -> CompletionResult:
            now = self.clock()

            # Reads
            appointment = AppointmentRepository(db).get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment", appointment_id)

            blocker = completion_blocker(appointment_id, AppointmentStatus(appointment.status))
            if blocker is not None:
                raise blocker

            users = UserRepository(db)
            user = users.get(appointment.client_id)

            # Writes
            if user is None:
                user = users.create(now, user_id=appointment.client_id)

            record = AppointmentCompletionRecord(
                id=appointment_id,
                photos=list(submission.photos),
                total_weight_kg=submission.total_weight_kg,
                materials=[{"type": m.type.value, "qty_kg": m.qty_kg} for m in materials],
                container_count=submission.container_count,
                observations=submission.observations,
                monetary_value=calculation.estimated_monetary_value,
                credits_awarded=calculation.total_credits,
                completed_at=now,
            )
            db.add(record)

            appointment.status = AppointmentStatus.COMPLETED.value
            appointment.updated_at = now

            CreditTransactionRepository(db).append(
                user_id=user.id,
                kind=CreditTransactionKind.EARNED,
                amount=calculation.total_credits,
                description=f"Credits earned for appointment {appointment_id}",
                now=now,
                reference_id=appointment_id,
            )

            new_balance = (user.credits or 0) + calculation.total_credits
            user.credits = new_balance
            user.updated_at = now

            return CompletionResult(
                completion=completion_to_domain(record),
                credits_awarded=calculation.total_credits,
                new_balance=new_balance,
                user_id=user.id,
            )

        return self.store.atomically(body, name="complete_appointment")

    def can_complete(self, appointment_id: str) -> CanComplete:
        """Pre-flight check mirroring the completion guards, commits nothing"""

        def body(db: Session) -> CanComplete:
            appointment = AppointmentRepository(db).get(appointment_id)
            if appointment is None:
                return CanComplete(can_complete=False, reason="Appointment not found")

            domain = appointment_to_domain(appointment)
            blocker = completion_blocker(appointment_id, domain.status)
            if blocker is not None:
                return CanComplete(can_complete=False, reason=str(blocker), appointment=domain)
            return CanComplete(can_complete=True, appointment=domain)

        return self.store.read(body)

    def get_completion(self, appointment_id: str):
        def body(db: Session):
            record = CompletionRepository(db).get(appointment_id)
            if record is None:
                raise NotFoundError("Appointment completion", appointment_id)
            return completion_to_domain(record)

        return self.store.read(body)

    def get_completion_stats(self, appointment_id: str) -> CompletionStats:
        """Stored settlement figures plus a recomputed credit breakdown"""
        completion = self.get_completion(appointment_id)
        breakdown = calculate_credits(
            completion.materials,
            completion.total_weight_kg,
            completion.container_count,
            self.rules,
        )
        return CompletionStats(
            credits_awarded=completion.credits_awarded,
            monetary_value=completion.monetary_value,
            total_weight_kg=completion.total_weight_kg,
            material_type_count=len({m.type for m in completion.materials}),
            breakdown=breakdown,
        )

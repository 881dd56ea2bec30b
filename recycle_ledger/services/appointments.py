"""Appointment lifecycle operations outside completion"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from recycle_ledger.domain.appointments import MIN_REJECTION_REASON_LENGTH, ensure_can_cancel, review_transition
from recycle_ledger.domain.exceptions import NotFoundError, ValidationError
from recycle_ledger.domain.models import Appointment, AppointmentStatus, ReviewDecision
from recycle_ledger.domain.validation import parse_material_type
from recycle_ledger.infrastructure.database.ledger import LedgerStore
from recycle_ledger.infrastructure.database.models import AppointmentRecord, new_id
from recycle_ledger.infrastructure.database.repositories import (
    AppointmentRepository,
    RecyclerRepository,
    UserRepository,
    appointment_to_domain,
)
from recycle_ledger.utils.date_utils import utc_now


@dataclass
class NewAppointment:
    """Client request to book a pickup"""

    client_id: str
    scheduled_at: datetime
    address: str
    recycler_id: Optional[str] = None
    approx_quantity_kg: Optional[float] = None
    description: Optional[str] = None
    materials: List[str] = field(default_factory=list)


class AppointmentService:
    """Books, reviews and cancels appointments"""

    def __init__(
        self,
        store: LedgerStore,
        min_rejection_reason_length: int = MIN_REJECTION_REASON_LENGTH,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.min_rejection_reason_length = min_rejection_reason_length
        self.clock = clock

    def create_appointment(self, request: NewAppointment) -> Appointment:
        """Book a pending appointment; client and recycler must exist"""
        errors = []
        if not request.address or not request.address.strip():
            errors.append("Address is required")
        if request.approx_quantity_kg is not None and request.approx_quantity_kg <= 0:
            errors.append("Approximate quantity must be greater than 0")

        materials = []
        for tag in request.materials:
            try:
                material = parse_material_type(tag)
            except ValidationError as e:
                errors.extend(e.details)
                continue
            if material not in materials:
                materials.append(material)

        if errors:
            raise ValidationError(errors)

        def body(db: Session) -> Appointment:
            now = self.clock()
            if not UserRepository(db).exists(request.client_id):
                raise NotFoundError("User", request.client_id)
            if request.recycler_id and not RecyclerRepository(db).exists(request.recycler_id):
                raise NotFoundError("Recycler", request.recycler_id)

            record = AppointmentRecord(
                id=new_id(),
                client_id=request.client_id,
                recycler_id=request.recycler_id,
                scheduled_at=request.scheduled_at,
                address=request.address.strip(),
                approx_quantity_kg=request.approx_quantity_kg,
                description=request.description,
                materials=[m.value for m in materials],
                status=AppointmentStatus.PENDING.value,
                rejection_reason=None,
                created_at=now,
                updated_at=now,
            )
            db.add(record)
            return appointment_to_domain(record)

        return self.store.atomically(body, name="create_appointment")

    def review_appointment(
        self,
        appointment_id: str,
        decision: ReviewDecision,
        rejection_reason: Optional[str] = None,
        recycler_id: Optional[str] = None,
    ) -> Appointment:
        """
        Approve or reject a pending appointment.

        Approval needs a recycler, either already assigned or supplied here.

        Raises:
            ValidationError: missing/short rejection reason, no recycler to approve
            NotFoundError: appointment or supplied recycler missing
            InvalidStateError: appointment already left pending
        """
        if decision == ReviewDecision.REJECT:
            # Validates the reason before touching storage
            review_transition(AppointmentStatus.PENDING, decision, rejection_reason, self.min_rejection_reason_length)

        def body(db: Session) -> Appointment:
            now = self.clock()
            appointment = AppointmentRepository(db).get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment", appointment_id)
            if recycler_id and not RecyclerRepository(db).exists(recycler_id):
                raise NotFoundError("Recycler", recycler_id)

            status, reason = review_transition(
                AppointmentStatus(appointment.status),
                decision,
                rejection_reason,
                self.min_rejection_reason_length,
            )
            if status == AppointmentStatus.APPROVED and not (recycler_id or appointment.recycler_id):
                raise ValidationError("A recycler must be assigned to approve the appointment")

            if recycler_id:
                appointment.recycler_id = recycler_id
            appointment.status = status.value
            appointment.rejection_reason = reason
            appointment.updated_at = now
            return appointment_to_domain(appointment)

        return self.store.atomically(body, name="review_appointment")

    def cancel_appointment(self, appointment_id: str) -> Appointment:
        def body(db: Session) -> Appointment:
            appointment = AppointmentRepository(db).get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment", appointment_id)
            ensure_can_cancel(AppointmentStatus(appointment.status))

            appointment.status = AppointmentStatus.CANCELLED.value
            appointment.updated_at = self.clock()
            return appointment_to_domain(appointment)

        return self.store.atomically(body, name="cancel_appointment")

    def get_appointment(self, appointment_id: str) -> Appointment:
        def body(db: Session) -> Appointment:
            appointment = AppointmentRepository(db).get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment", appointment_id)
            return appointment_to_domain(appointment)

        return self.store.read(body)

    def list_user_appointments(self, user_id: str) -> List[Appointment]:
        def body(db: Session) -> List[Appointment]:
            if not UserRepository(db).exists(user_id):
                raise NotFoundError("User", user_id)
            return [appointment_to_domain(a) for a in AppointmentRepository(db).list_by_client(user_id)]

        return self.store.read(body)

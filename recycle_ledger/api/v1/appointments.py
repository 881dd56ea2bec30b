"""Appointment lifecycle and completion endpoints"""

import time

from fastapi import APIRouter, Depends, Request

from recycle_ledger.api.v1.schemas import (
    AppointmentCreateRequest,
    AppointmentResponse,
    CanCompleteResponse,
    CompletionRequest,
    CompletionResponse,
    CompletionSchema,
    CompletionStatsResponse,
    CreditBreakdownSchema,
    MaterialQuantitySchema,
    ReviewRequest,
)
from recycle_ledger.api.dependencies import get_appointment_service, get_completion_service, get_request_id
from recycle_ledger.domain.exceptions import (
    DomainException,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from recycle_ledger.domain.models import (
    Appointment,
    AppointmentCompletion,
    CompletionSubmission,
    MaterialEntry,
    ReviewDecision,
)
from recycle_ledger.infrastructure.observability.logging import log_completion
from recycle_ledger.infrastructure.observability.metrics import record_completion
from recycle_ledger.services.appointments import AppointmentService, NewAppointment
from recycle_ledger.services.completion import CompletionService

router = APIRouter()


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        client_id=appointment.client_id,
        recycler_id=appointment.recycler_id,
        scheduled_at=appointment.scheduled_at,
        address=appointment.address,
        approx_quantity_kg=appointment.approx_quantity_kg,
        description=appointment.description,
        materials=[m.value for m in appointment.materials],
        status=appointment.status.value,
        rejection_reason=appointment.rejection_reason,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


def to_completion_schema(completion: AppointmentCompletion) -> CompletionSchema:
    return CompletionSchema(
        appointment_id=completion.id,
        photos=completion.photos,
        total_weight_kg=completion.total_weight_kg,
        materials=[MaterialQuantitySchema(type=m.type.value, qty_kg=m.qty_kg) for m in completion.materials],
        container_count=completion.container_count,
        observations=completion.observations,
        monetary_value=completion.monetary_value,
        credits_awarded=completion.credits_awarded,
        completed_at=completion.completed_at,
    )


@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    request_body: AppointmentCreateRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a pickup appointment in pending state"""
    appointment = service.create_appointment(
        NewAppointment(
            client_id=request_body.client_id,
            recycler_id=request_body.recycler_id,
            scheduled_at=request_body.scheduled_at,
            address=request_body.address,
            approx_quantity_kg=request_body.approx_quantity_kg,
            description=request_body.description,
            materials=request_body.materials,
        )
    )
    return to_appointment_response(appointment)


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    return to_appointment_response(service.get_appointment(appointment_id))


@router.post("/appointments/{appointment_id}/review", response_model=AppointmentResponse)
def review_appointment(
    appointment_id: str,
    request_body: ReviewRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Approve or reject a pending appointment"""
    appointment = service.review_appointment(
        appointment_id,
        ReviewDecision(request_body.decision),
        rejection_reason=request_body.rejection_reason,
        recycler_id=request_body.recycler_id,
    )
    return to_appointment_response(appointment)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    return to_appointment_response(service.cancel_appointment(appointment_id))


@router.post("/appointments/{appointment_id}/complete", response_model=CompletionResponse)
def complete_appointment(
    appointment_id: str,
    request_body: CompletionRequest,
    request: Request,
    service: CompletionService = Depends(get_completion_service),
):
    """
    Complete an appointment with evidence and settle the earned credits.

    Flow:
    1. Validate photos, weights, materials, containers and observations
    2. Check the appointment can still be completed
    3. Compute the credit award
    4. Atomically store the completion, close the appointment and credit the user
    """
    start_time = time.time()
    request_id = get_request_id(request)

    submission = CompletionSubmission(
        photos=request_body.photos,
        total_weight_kg=request_body.total_weight_kg,
        materials=[MaterialEntry(type=m.type, qty_kg=m.qty_kg) for m in request_body.materials],
        container_count=request_body.container_count,
        observations=request_body.observations,
    )

    try:
        result = service.complete_appointment(appointment_id, submission)
    except ValidationError:
        record_completion("validation_error")
        raise
    except NotFoundError:
        record_completion("not_found")
        raise
    except StateConflictError:
        record_completion("conflict")
        raise
    except DomainException:
        record_completion("error")
        raise

    duration_ms = (time.time() - start_time) * 1000
    record_completion("completed", result.credits_awarded)
    log_completion(
        request_id,
        appointment_id,
        result.user_id,
        result.credits_awarded,
        result.new_balance,
        duration_ms,
    )

    return CompletionResponse(
        completion=to_completion_schema(result.completion),
        credits_awarded=result.credits_awarded,
        new_balance=result.new_balance,
    )


@router.get("/appointments/{appointment_id}/completion", response_model=CompletionSchema)
def get_completion(appointment_id: str, service: CompletionService = Depends(get_completion_service)):
    return to_completion_schema(service.get_completion(appointment_id))


@router.get("/appointments/{appointment_id}/completion/stats", response_model=CompletionStatsResponse)
def get_completion_stats(appointment_id: str, service: CompletionService = Depends(get_completion_service)):
    """Settlement figures with the recomputed credit breakdown"""
    stats = service.get_completion_stats(appointment_id)
    return CompletionStatsResponse(
        credits_awarded=stats.credits_awarded,
        monetary_value=stats.monetary_value,
        total_weight_kg=stats.total_weight_kg,
        material_type_count=stats.material_type_count,
        breakdown=CreditBreakdownSchema(
            base_credits=stats.breakdown.base_credits,
            bonus_credits=stats.breakdown.bonus_credits,
            total_credits=stats.breakdown.total_credits,
            weight_multiplier=stats.breakdown.weight_multiplier,
            average_credits_per_kg=stats.breakdown.average_credits_per_kg,
        ),
    )


@router.get("/appointments/{appointment_id}/can-complete", response_model=CanCompleteResponse)
def can_complete(appointment_id: str, service: CompletionService = Depends(get_completion_service)):
    result = service.can_complete(appointment_id)
    return CanCompleteResponse(
        can_complete=result.can_complete,
        reason=result.reason,
        appointment=to_appointment_response(result.appointment) if result.appointment else None,
    )

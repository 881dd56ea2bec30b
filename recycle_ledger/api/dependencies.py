"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request

from recycle_ledger.config import Settings, settings
from recycle_ledger.domain.validation import CompletionPolicy
from recycle_ledger.infrastructure.database.ledger import LedgerStore
from recycle_ledger.services.appointments import AppointmentService
from recycle_ledger.services.completion import CompletionService
from recycle_ledger.services.credits import CreditsService
from recycle_ledger.services.redemption import RedemptionService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


def get_store(request: Request) -> LedgerStore:
    """Ledger store built by the application factory"""
    return request.app.state.store


def get_completion_service(
    store: LedgerStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
) -> CompletionService:
    return CompletionService(store, policy=CompletionPolicy.from_settings(app_settings))


def get_redemption_service(
    store: LedgerStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
) -> RedemptionService:
    return RedemptionService(store, claim_expiry_days=app_settings.claim_default_expiry_days)


def get_appointment_service(
    store: LedgerStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
) -> AppointmentService:
    return AppointmentService(store, min_rejection_reason_length=app_settings.min_rejection_reason_length)


def get_credits_service(store: LedgerStore = Depends(get_store)) -> CreditsService:
    return CreditsService(store)

"""Credit balance, coupon catalogue and coupon redemption endpoints"""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from recycle_ledger.api.v1.schemas import (
    AppointmentResponse,
    CanClaimResponse,
    ClaimedCouponResponse,
    ClaimRequest,
    ClaimResponse,
    CouponCreateRequest,
    CouponListResponse,
    CouponResponse,
    CreditHistoryResponse,
    CreditTransactionResponse,
    RecyclerCreateRequest,
    RecyclerResponse,
    UserCreateRequest,
    UserCreditsResponse,
)
from recycle_ledger.api.v1.appointments import to_appointment_response
from recycle_ledger.api.dependencies import (
    get_appointment_service,
    get_credits_service,
    get_redemption_service,
    get_request_id,
)
from recycle_ledger.domain.exceptions import (
    DomainException,
    InsufficientCreditsError,
    NotFoundError,
    StateConflictError,
)
from recycle_ledger.domain.models import ClaimedCoupon, Coupon, UserCredits
from recycle_ledger.infrastructure.observability.logging import log_claim
from recycle_ledger.infrastructure.observability.metrics import record_claim
from recycle_ledger.services.appointments import AppointmentService
from recycle_ledger.services.credits import CreditsService, NewCoupon
from recycle_ledger.services.redemption import RedemptionService

router = APIRouter()


def to_credits_response(credits: UserCredits) -> UserCreditsResponse:
    return UserCreditsResponse(user_id=credits.user_id, credits=credits.credits, updated_at=credits.updated_at)


def to_coupon_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        id=coupon.id,
        title=coupon.title,
        description=coupon.description,
        credit_cost=coupon.credit_cost,
        category=coupon.category,
        issuer=coupon.issuer,
        discount_value=coupon.discount_value,
        discount_percentage=coupon.discount_percentage,
        expires_at=coupon.expires_at,
        available_units=coupon.available_units,
        active=coupon.active,
        created_at=coupon.created_at,
        updated_at=coupon.updated_at,
    )


def to_claim_response(claim: ClaimedCoupon) -> ClaimedCouponResponse:
    return ClaimedCouponResponse(
        id=claim.id,
        user_id=claim.user_id,
        coupon_id=claim.coupon_id,
        claimed_at=claim.claimed_at,
        status=claim.status.value,
        redemption_code=claim.redemption_code,
        expires_at=claim.expires_at,
        used_at=claim.used_at,
    )


@router.post("/users", response_model=UserCreditsResponse, status_code=201)
def create_user(request_body: UserCreateRequest, service: CreditsService = Depends(get_credits_service)):
    """Create a user account with a zero credit balance"""
    return to_credits_response(service.create_user(name=request_body.name, email=request_body.email))


@router.post("/recyclers", response_model=RecyclerResponse, status_code=201)
def create_recycler(request_body: RecyclerCreateRequest, service: CreditsService = Depends(get_credits_service)):
    recycler_id = service.create_recycler(request_body.name)
    return RecyclerResponse(id=recycler_id, name=request_body.name.strip())


@router.get("/users/{user_id}/credits", response_model=UserCreditsResponse)
def get_user_credits(user_id: str, service: CreditsService = Depends(get_credits_service)):
    return to_credits_response(service.get_user_credits(user_id))


@router.get("/users/{user_id}/credit-history", response_model=CreditHistoryResponse)
def get_credit_history(user_id: str, service: CreditsService = Depends(get_credits_service)):
    """
    Retrieve the credit audit log for a user.

    Returns:
        Transactions newest first with earned/spent totals and current balance
    """
    history = service.get_credit_history(user_id)
    return CreditHistoryResponse(
        user_id=user_id,
        current_credits=history.current_credits,
        total_earned=history.total_earned,
        total_spent=history.total_spent,
        transactions=[
            CreditTransactionResponse(
                id=t.id,
                kind=t.kind.value,
                amount=t.amount,
                description=t.description,
                reference_id=t.reference_id,
                created_at=t.created_at,
            )
            for t in history.transactions
        ],
    )


@router.get("/users/{user_id}/appointments", response_model=List[AppointmentResponse])
def list_user_appointments(user_id: str, service: AppointmentService = Depends(get_appointment_service)):
    return [to_appointment_response(a) for a in service.list_user_appointments(user_id)]


@router.post("/users/{user_id}/claim-coupon", response_model=ClaimResponse)
def claim_coupon(
    user_id: str,
    request_body: ClaimRequest,
    request: Request,
    service: RedemptionService = Depends(get_redemption_service),
):
    """
    Redeem credits for a coupon.

    Flow:
    1. Check user, coupon state (active, not expired, units left) and balance
    2. Reject a second active/used claim of the same coupon
    3. Atomically create the claim, debit the balance, decrement units and log the spend
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = service.claim_coupon(user_id, request_body.coupon_id)
    except InsufficientCreditsError:
        record_claim("insufficient_credits")
        raise
    except NotFoundError:
        record_claim("not_found")
        raise
    except StateConflictError:
        record_claim("conflict")
        raise
    except DomainException:
        record_claim("error")
        raise

    duration_ms = (time.time() - start_time) * 1000
    record_claim("claimed", result.credit_cost)
    log_claim(
        request_id,
        user_id,
        request_body.coupon_id,
        result.claim.id,
        result.credit_cost,
        result.remaining_balance,
        duration_ms,
    )

    return ClaimResponse(
        claim=to_claim_response(result.claim),
        remaining_balance=result.remaining_balance,
        redemption_code=result.redemption_code,
    )


@router.get("/users/{user_id}/claimed-coupons", response_model=List[ClaimedCouponResponse])
def list_claimed_coupons(user_id: str, service: CreditsService = Depends(get_credits_service)):
    return [to_claim_response(c) for c in service.list_claimed_coupons(user_id)]


@router.get("/users/{user_id}/can-claim/{coupon_id}", response_model=CanClaimResponse)
def can_claim(user_id: str, coupon_id: str, service: RedemptionService = Depends(get_redemption_service)):
    result = service.can_claim(user_id, coupon_id)
    return CanClaimResponse(
        can_claim=result.can_claim,
        reason=result.reason,
        required=result.required,
        available=result.available,
    )


@router.post("/coupons", response_model=CouponResponse, status_code=201)
def create_coupon(request_body: CouponCreateRequest, service: CreditsService = Depends(get_credits_service)):
    coupon = service.create_coupon(NewCoupon(**request_body.model_dump()))
    return to_coupon_response(coupon)


@router.get("/coupons", response_model=CouponListResponse)
def list_coupons(
    category: Optional[str] = Query(None, description="Case-insensitive category filter"),
    issuer: Optional[str] = Query(None, description="Case-insensitive issuer filter"),
    service: CreditsService = Depends(get_credits_service),
):
    """List active coupons, cheapest first"""
    coupons = service.list_active_coupons(category=category, issuer=issuer)
    return CouponListResponse(coupons=[to_coupon_response(c) for c in coupons], count=len(coupons))


@router.get("/coupons/{coupon_id}", response_model=CouponResponse)
def get_coupon(coupon_id: str, service: CreditsService = Depends(get_credits_service)):
    return to_coupon_response(service.get_coupon(coupon_id))

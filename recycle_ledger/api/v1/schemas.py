"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional


class MaterialEntrySchema(BaseModel):
    """One material line of a completion submission"""

    type: str = Field(..., description="Material type, e.g. plastic, metal")
    qty_kg: float = Field(..., description="Quantity in kg")


class CompletionRequest(BaseModel):
    """Request body for POST /v1/appointments/{id}/complete"""

    photos: List[str]
    total_weight_kg: float
    materials: List[MaterialEntrySchema]
    container_count: int
    observations: str


class MaterialQuantitySchema(BaseModel):
    type: str
    qty_kg: float


class CompletionSchema(BaseModel):
    appointment_id: str
    photos: List[str]
    total_weight_kg: float
    materials: List[MaterialQuantitySchema]
    container_count: int
    observations: str
    monetary_value: int
    credits_awarded: int
    completed_at: datetime


class CompletionResponse(BaseModel):
    """Response for POST /v1/appointments/{id}/complete"""

    completion: CompletionSchema
    credits_awarded: int
    new_balance: int


class CreditBreakdownSchema(BaseModel):
    base_credits: int
    bonus_credits: int
    total_credits: int
    weight_multiplier: float
    average_credits_per_kg: int


class CompletionStatsResponse(BaseModel):
    credits_awarded: int
    monetary_value: int
    total_weight_kg: float
    material_type_count: int
    breakdown: CreditBreakdownSchema


class AppointmentCreateRequest(BaseModel):
    """Request body for POST /v1/appointments"""

    client_id: str = Field(..., min_length=1)
    recycler_id: Optional[str] = None
    scheduled_at: datetime
    address: str = Field(..., min_length=1)
    approx_quantity_kg: Optional[float] = None
    description: Optional[str] = None
    materials: List[str] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    """Request body for POST /v1/appointments/{id}/review"""

    decision: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None
    recycler_id: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: str
    client_id: str
    recycler_id: Optional[str] = None
    scheduled_at: datetime
    address: str
    approx_quantity_kg: Optional[float] = None
    description: Optional[str] = None
    materials: List[str]
    status: str
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CanCompleteResponse(BaseModel):
    can_complete: bool
    reason: Optional[str] = None
    appointment: Optional[AppointmentResponse] = None


class UserCreateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class UserCreditsResponse(BaseModel):
    user_id: str
    credits: int
    updated_at: datetime


class RecyclerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class RecyclerResponse(BaseModel):
    id: str
    name: str


class CouponCreateRequest(BaseModel):
    """Request body for POST /v1/coupons"""

    title: str = Field(..., min_length=1)
    description: str = ""
    credit_cost: int = Field(..., gt=0)
    category: str
    issuer: str
    discount_value: Optional[int] = None
    discount_percentage: Optional[float] = None
    expires_at: Optional[datetime] = None
    available_units: Optional[int] = Field(default=None, ge=0)
    active: bool = True


class CouponResponse(BaseModel):
    id: str
    title: str
    description: str
    credit_cost: int
    category: str
    issuer: str
    discount_value: Optional[int] = None
    discount_percentage: Optional[float] = None
    expires_at: Optional[datetime] = None
    available_units: Optional[int] = None
    active: bool
    created_at: datetime
    updated_at: datetime


class CouponListResponse(BaseModel):
    coupons: List[CouponResponse]
    count: int


class ClaimRequest(BaseModel):
    """Request body for POST /v1/users/{id}/claim-coupon"""

    coupon_id: str = Field(..., min_length=1)


class ClaimedCouponResponse(BaseModel):
    id: str
    user_id: str
    coupon_id: str
    claimed_at: datetime
    status: str
    redemption_code: str
    expires_at: datetime
    used_at: Optional[datetime] = None


class ClaimResponse(BaseModel):
    claim: ClaimedCouponResponse
    remaining_balance: int
    redemption_code: str


class CanClaimResponse(BaseModel):
    can_claim: bool
    reason: Optional[str] = None
    required: Optional[int] = None
    available: Optional[int] = None


class CreditTransactionResponse(BaseModel):
    id: str
    kind: str
    amount: int
    description: str
    reference_id: Optional[str] = None
    created_at: datetime


class CreditHistoryResponse(BaseModel):
    user_id: str
    current_credits: int
    total_earned: int
    total_spent: int
    transactions: List[CreditTransactionResponse]

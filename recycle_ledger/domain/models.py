"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AppointmentStatus(str, Enum):
    """Lifecycle states of a pickup appointment"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaterialType(str, Enum):
    PLASTIC = "plastic"
    PAPER = "paper"
    CARDBOARD = "cardboard"
    GLASS = "glass"
    METAL = "metal"
    ELECTRONIC = "electronic"
    ORGANIC = "organic"
    TEXTILE = "textile"
    OTHER = "other"


class ClaimStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class CreditTransactionKind(str, Enum):
    EARNED = "earned"
    SPENT = "spent"
    BONUS = "bonus"
    ADJUSTMENT = "adjustment"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class MaterialQuantity:
    """Validated weight of one material type in a completion"""

    type: MaterialType
    qty_kg: float


@dataclass(frozen=True)
class MaterialEntry:
    """Material line as submitted, before the type tag is validated"""

    type: str
    qty_kg: float


@dataclass
class CompletionSubmission:
    """Evidence submitted by a recycler to complete an appointment"""

    photos: List[str]
    total_weight_kg: float
    materials: List[MaterialEntry]
    container_count: int
    observations: str


@dataclass
class CreditCalculation:
    """Output of the credit calculation engine"""

    base_credits: int
    bonus_credits: int
    total_credits: int
    estimated_monetary_value: int
    weight_multiplier: float
    average_credits_per_kg: int


@dataclass
class Appointment:
    id: str
    client_id: str
    recycler_id: Optional[str]
    scheduled_at: datetime
    address: str
    approx_quantity_kg: Optional[float]
    description: Optional[str]
    materials: List[MaterialType]
    status: AppointmentStatus
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class AppointmentCompletion:
    """Evidence-and-settlement record, shares its id with the appointment"""

    id: str
    photos: List[str]
    total_weight_kg: float
    materials: List[MaterialQuantity]
    container_count: int
    observations: str
    monetary_value: int
    credits_awarded: int
    completed_at: datetime


@dataclass
class CompletionResult:
    completion: AppointmentCompletion
    credits_awarded: int
    new_balance: int
    user_id: str


@dataclass
class CompletionStats:
    credits_awarded: int
    monetary_value: int
    total_weight_kg: float
    material_type_count: int
    breakdown: CreditCalculation


@dataclass
class CanComplete:
    can_complete: bool
    reason: Optional[str] = None
    appointment: Optional[Appointment] = None


@dataclass
class UserCredits:
    user_id: str
    credits: int
    updated_at: datetime


@dataclass
class Coupon:
    id: str
    title: str
    description: str
    credit_cost: int
    category: str
    issuer: str
    discount_value: Optional[int]
    discount_percentage: Optional[float]
    expires_at: Optional[datetime]
    available_units: Optional[int]
    active: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class ClaimedCoupon:
    id: str
    user_id: str
    coupon_id: str
    claimed_at: datetime
    status: ClaimStatus
    redemption_code: str
    expires_at: datetime
    used_at: Optional[datetime] = None


@dataclass
class ClaimResult:
    claim: ClaimedCoupon
    remaining_balance: int
    redemption_code: str
    credit_cost: int


@dataclass
class CanClaim:
    can_claim: bool
    reason: Optional[str] = None
    required: Optional[int] = None
    available: Optional[int] = None


@dataclass
class CreditTransaction:
    id: str
    user_id: str
    kind: CreditTransactionKind
    amount: int
    description: str
    reference_id: Optional[str]
    created_at: datetime


@dataclass
class CreditHistory:
    transactions: List[CreditTransaction] = field(default_factory=list)
    current_credits: int = 0
    total_earned: int = 0
    total_spent: int = 0

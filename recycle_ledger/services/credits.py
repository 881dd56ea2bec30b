"""Credit balances, coupon catalogue and profile records used by the ledger"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from recycle_ledger.domain.exceptions import NotFoundError, ValidationError
from recycle_ledger.domain.models import ClaimedCoupon, Coupon, CreditHistory, UserCredits
from recycle_ledger.infrastructure.database.ledger import LedgerStore
from recycle_ledger.infrastructure.database.models import CouponRecord, new_id
from recycle_ledger.infrastructure.database.repositories import (
    ClaimRepository,
    CouponRepository,
    CreditTransactionRepository,
    RecyclerRepository,
    UserRepository,
    claim_to_domain,
    coupon_to_domain,
    credit_transaction_to_domain,
    user_credits_to_domain,
)
from recycle_ledger.utils.date_utils import utc_now


@dataclass
class NewCoupon:
    title: str
    credit_cost: int
    category: str
    issuer: str
    description: str = ""
    discount_value: Optional[int] = None
    discount_percentage: Optional[float] = None
    expires_at: Optional[datetime] = None
    available_units: Optional[int] = None
    active: bool = True


class CreditsService:
    """Read side of the credit ledger plus catalogue/profile creation"""

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def create_user(self, name: Optional[str] = None, email: Optional[str] = None) -> UserCredits:
        """Create a user account with a zero balance"""

        def body(db: Session) -> UserCredits:
            user = UserRepository(db).create(self.clock(), name=name, email=email)
            return user_credits_to_domain(user)

        return self.store.atomically(body, name="create_user")

    def create_recycler(self, name: str) -> str:
        if not name or not name.strip():
            raise ValidationError("Recycler name is required")

        def body(db: Session) -> str:
            return RecyclerRepository(db).create(name.strip(), self.clock()).id

        return self.store.atomically(body, name="create_recycler")

    def create_coupon(self, request: NewCoupon) -> Coupon:
        errors = []
        if not request.title or not request.title.strip():
            errors.append("Title is required")
        if request.credit_cost is None or request.credit_cost <= 0:
            errors.append("Credit cost must be greater than 0")
        if request.discount_value is not None and request.discount_percentage is not None:
            errors.append("Set either a discount value or a discount percentage, not both")
        if request.discount_percentage is not None and not 0 < request.discount_percentage <= 100:
            errors.append("Discount percentage must be between 0 and 100")
        if request.available_units is not None and request.available_units < 0:
            errors.append("Available units cannot be negative")
        if errors:
            raise ValidationError(errors)

        def body(db: Session) -> Coupon:
            now = self.clock()
            record = CouponRecord(
                id=new_id(),
                title=request.title.strip(),
                description=request.description,
                credit_cost=request.credit_cost,
                category=request.category,
                issuer=request.issuer,
                discount_value=request.discount_value,
                discount_percentage=request.discount_percentage,
                expires_at=request.expires_at,
                available_units=request.available_units,
                active=request.active,
                created_at=now,
                updated_at=now,
            )
            db.add(record)
            return coupon_to_domain(record)

        return self.store.atomically(body, name="create_coupon")

    def get_user_credits(self, user_id: str) -> UserCredits:
        def body(db: Session) -> UserCredits:
            user = UserRepository(db).get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return user_credits_to_domain(user)

        return self.store.read(body)

    def list_active_coupons(self, category: Optional[str] = None, issuer: Optional[str] = None) -> List[Coupon]:
        """Active coupons, cheapest first, with case-insensitive substring filters"""

        def body(db: Session) -> List[Coupon]:
            coupons = [coupon_to_domain(c) for c in CouponRepository(db).list_active()]
            if category:
                coupons = [c for c in coupons if category.lower() in c.category.lower()]
            if issuer:
                coupons = [c for c in coupons if issuer.lower() in c.issuer.lower()]
            return coupons

        return self.store.read(body)

    def get_coupon(self, coupon_id: str) -> Coupon:
        def body(db: Session) -> Coupon:
            coupon = CouponRepository(db).get(coupon_id)
            if coupon is None:
                raise NotFoundError("Coupon", coupon_id)
            return coupon_to_domain(coupon)

        return self.store.read(body)

    def list_claimed_coupons(self, user_id: str) -> List[ClaimedCoupon]:
        def body(db: Session) -> List[ClaimedCoupon]:
            if not UserRepository(db).exists(user_id):
                raise NotFoundError("User", user_id)
            return [claim_to_domain(c) for c in ClaimRepository(db).list_by_user(user_id)]

        return self.store.read(body)

    def get_credit_history(self, user_id: str) -> CreditHistory:
        """Audit log newest first, with earned/spent totals and the live balance"""

        def body(db: Session) -> CreditHistory:
            user = UserRepository(db).get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)

            transactions = [
                credit_transaction_to_domain(t)
                for t in CreditTransactionRepository(db).list_by_user(user_id)
            ]
            return CreditHistory(
                transactions=transactions,
                current_credits=user.credits or 0,
                total_earned=sum(t.amount for t in transactions if t.amount > 0),
                total_spent=sum(-t.amount for t in transactions if t.amount < 0),
            )

        return self.store.read(body)

"""Coupon redemption transaction - eligibility, credit debit and claim record as one unit"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from recycle_ledger.domain.exceptions import (
    AlreadyClaimedError,
    CouponExpiredError,
    CouponUnavailableError,
    InsufficientCreditsError,
    NotFoundError,
)
from recycle_ledger.domain.models import CanClaim, ClaimResult, ClaimStatus, CreditTransactionKind
from recycle_ledger.infrastructure.database.ledger import LedgerStore
from recycle_ledger.infrastructure.database.models import ClaimedCouponRecord, CouponRecord, UserAccount, new_id
from recycle_ledger.infrastructure.database.repositories import (
    ClaimRepository,
    CouponRepository,
    CreditTransactionRepository,
    UserRepository,
    claim_to_domain,
)
from recycle_ledger.utils.codes import generate_redemption_code
from recycle_ledger.utils.date_utils import add_days, as_utc, utc_now

# Claims in these states block a new claim of the same coupon
BLOCKING_CLAIM_STATUSES = (ClaimStatus.ACTIVE, ClaimStatus.USED)


def _check_eligibility(
    db: Session,
    user: Optional[UserAccount],
    coupon: Optional[CouponRecord],
    user_id: str,
    coupon_id: str,
    now: datetime,
) -> None:
    """Raise the first reason the user cannot claim the coupon"""
    if user is None:
        raise NotFoundError("User", user_id)
    if coupon is None:
        raise NotFoundError("Coupon", coupon_id)

    if not coupon.active:
        raise CouponUnavailableError(f"Coupon {coupon_id} is not active")
    if coupon.expires_at is not None and as_utc(coupon.expires_at) < now:
        raise CouponExpiredError(f"Coupon {coupon_id} expired on {as_utc(coupon.expires_at).isoformat()}")
    if coupon.available_units is not None and coupon.available_units <= 0:
        raise CouponUnavailableError(f"Coupon {coupon_id} has no units left")

    balance = user.credits or 0
    if balance < coupon.credit_cost:
        raise InsufficientCreditsError(required=coupon.credit_cost, available=balance)

    existing = ClaimRepository(db).find_by_user_and_coupon(user_id, coupon_id, BLOCKING_CLAIM_STATUSES)
    if existing:
        raise AlreadyClaimedError(user_id, coupon_id)


class RedemptionService:
    """Redeems credits for coupons"""

    def __init__(
        self,
        store: LedgerStore,
        claim_expiry_days: int = 30,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[], str] = generate_redemption_code,
    ):
        self.store = store
        self.claim_expiry_days = claim_expiry_days
        self.clock = clock
        self.code_generator = code_generator

    def claim_coupon(self, user_id: str, coupon_id: str) -> ClaimResult:
        """
        Claim a coupon, debiting its cost from the user's balance.

        Concurrent claims by the same user serialize on the user record's
        version: each claim rewrites the balance, so the loser re-runs and
        then sees the winner's claim (AlreadyClaimed) or the lower balance.

        Raises:
            NotFoundError, CouponUnavailableError, CouponExpiredError,
            InsufficientCreditsError, AlreadyClaimedError
        """

        def body(db: Session) -> ClaimResult:
            now = self.clock()

            # Reads
            user = UserRepository(db).get(user_id)
            coupon = CouponRepository(db).get(coupon_id)
            _check_eligibility(db, user, coupon, user_id, coupon_id, now)

            code = self.code_generator()
            expires_at = as_utc(coupon.expires_at) or add_days(now, self.claim_expiry_days)

            # Writes
            claim = ClaimedCouponRecord(
                id=new_id(),
                user_id=user_id,
                coupon_id=coupon_id,
                claimed_at=now,
                status=ClaimStatus.ACTIVE.value,
                redemption_code=code,
                expires_at=expires_at,
            )
            db.add(claim)

            remaining = user.credits - coupon.credit_cost
            user.credits = remaining
            user.updated_at = now

            if coupon.available_units is not None:
                coupon.available_units = coupon.available_units - 1
                coupon.updated_at = now

            CreditTransactionRepository(db).append(
                user_id=user_id,
                kind=CreditTransactionKind.SPENT,
                amount=-coupon.credit_cost,
                description=f"Coupon claimed: {coupon.title}",
                now=now,
                reference_id=claim.id,
            )

            return ClaimResult(
                claim=claim_to_domain(claim),
                remaining_balance=remaining,
                redemption_code=code,
                credit_cost=coupon.credit_cost,
            )

        return self.store.atomically(body, name="claim_coupon")

    def can_claim(self, user_id: str, coupon_id: str) -> CanClaim:
        """Pre-flight check mirroring the claim guards, commits nothing"""

        def body(db: Session) -> CanClaim:
            user = UserRepository(db).get(user_id)
            coupon = CouponRepository(db).get(coupon_id)
            try:
                _check_eligibility(db, user, coupon, user_id, coupon_id, self.clock())
            except InsufficientCreditsError as e:
                return CanClaim(
                    can_claim=False,
                    reason="Insufficient credits",
                    required=e.required,
                    available=e.available,
                )
            except (NotFoundError, CouponUnavailableError, CouponExpiredError, AlreadyClaimedError) as e:
                return CanClaim(can_claim=False, reason=str(e))

            return CanClaim(can_claim=True, required=coupon.credit_cost, available=user.credits or 0)

        return self.store.read(body)

"""Data access layer for ledger collections"""

from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from recycle_ledger.infrastructure.database.models import (
    AppointmentCompletionRecord,
    AppointmentRecord,
    ClaimedCouponRecord,
    CouponRecord,
    CreditTransactionRecord,
    Recycler,
    UserAccount,
    new_id,
)
from recycle_ledger.domain.models import (
    Appointment,
    AppointmentCompletion,
    AppointmentStatus,
    ClaimedCoupon,
    ClaimStatus,
    Coupon,
    CreditTransaction,
    CreditTransactionKind,
    MaterialQuantity,
    MaterialType,
    UserCredits,
)
from recycle_ledger.utils.date_utils import as_utc


def appointment_to_domain(record: AppointmentRecord) -> Appointment:
    return Appointment(
        id=record.id,
        client_id=record.client_id,
        recycler_id=record.recycler_id,
        scheduled_at=as_utc(record.scheduled_at),
        address=record.address,
        approx_quantity_kg=record.approx_quantity_kg,
        description=record.description,
        materials=[MaterialType(m) for m in record.materials or []],
        status=AppointmentStatus(record.status),
        rejection_reason=record.rejection_reason,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


def completion_to_domain(record: AppointmentCompletionRecord) -> AppointmentCompletion:
    return AppointmentCompletion(
        id=record.id,
        photos=list(record.photos),
        total_weight_kg=record.total_weight_kg,
        materials=[MaterialQuantity(type=MaterialType(m["type"]), qty_kg=m["qty_kg"]) for m in record.materials],
        container_count=record.container_count,
        observations=record.observations,
        monetary_value=record.monetary_value,
        credits_awarded=record.credits_awarded,
        completed_at=as_utc(record.completed_at),
    )


def coupon_to_domain(record: CouponRecord) -> Coupon:
    return Coupon(
        id=record.id,
        title=record.title,
        description=record.description,
        credit_cost=record.credit_cost,
        category=record.category,
        issuer=record.issuer,
        discount_value=record.discount_value,
        discount_percentage=record.discount_percentage,
        expires_at=as_utc(record.expires_at),
        available_units=record.available_units,
        active=record.active,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


def claim_to_domain(record: ClaimedCouponRecord) -> ClaimedCoupon:
    return ClaimedCoupon(
        id=record.id,
        user_id=record.user_id,
        coupon_id=record.coupon_id,
        claimed_at=as_utc(record.claimed_at),
        status=ClaimStatus(record.status),
        redemption_code=record.redemption_code,
        expires_at=as_utc(record.expires_at),
        used_at=as_utc(record.used_at),
    )


def credit_transaction_to_domain(record: CreditTransactionRecord) -> CreditTransaction:
    return CreditTransaction(
        id=record.id,
        user_id=record.user_id,
        kind=CreditTransactionKind(record.kind),
        amount=record.amount,
        description=record.description,
        reference_id=record.reference_id,
        created_at=as_utc(record.created_at),
    )


def user_credits_to_domain(record: UserAccount) -> UserCredits:
    return UserCredits(user_id=record.id, credits=record.credits or 0, updated_at=as_utc(record.updated_at))


class UserRepository:
    """Repository for user accounts and their credit balance"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[UserAccount]:
        return self.db.get(UserAccount, user_id)

    def exists(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def create(self, now: datetime, user_id: Optional[str] = None, name: Optional[str] = None,
               email: Optional[str] = None) -> UserAccount:
        """Stage a new account with a zero balance"""
        user = UserAccount(id=user_id or new_id(), name=name, email=email, credits=0, created_at=now, updated_at=now)
        self.db.add(user)
        return user


class RecyclerRepository:
    """Repository for recycler profiles"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, recycler_id: str) -> Optional[Recycler]:
        return self.db.get(Recycler, recycler_id)

    def exists(self, recycler_id: str) -> bool:
        return self.get(recycler_id) is not None

    def create(self, name: str, now: datetime) -> Recycler:
        recycler = Recycler(id=new_id(), name=name, created_at=now)
        self.db.add(recycler)
        return recycler


class AppointmentRepository:
    """Repository for appointments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: str) -> Optional[AppointmentRecord]:
        return self.db.get(AppointmentRecord, appointment_id)

    def list_by_client(self, client_id: str, limit: int = 50) -> List[AppointmentRecord]:
        """Fetch a client's appointments, newest scheduled first"""
        return (
            self.db.query(AppointmentRecord)
            .filter(AppointmentRecord.client_id == client_id)
            .order_by(AppointmentRecord.scheduled_at.desc())
            .limit(limit)
            .all()
        )


class CompletionRepository:
    """Repository for appointment completions"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: str) -> Optional[AppointmentCompletionRecord]:
        return self.db.get(AppointmentCompletionRecord, appointment_id)


class CouponRepository:
    """Repository for coupon definitions"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, coupon_id: str) -> Optional[CouponRecord]:
        return self.db.get(CouponRecord, coupon_id)

    def list_active(self) -> List[CouponRecord]:
        """Active coupons, cheapest first"""
        return (
            self.db.query(CouponRecord)
            .filter(CouponRecord.active.is_(True))
            .order_by(CouponRecord.credit_cost.asc())
            .all()
        )


class ClaimRepository:
    """Repository for claimed coupons"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_user_and_coupon(self, user_id: str, coupon_id: str,
                                statuses: Iterable[ClaimStatus]) -> List[ClaimedCouponRecord]:
        return (
            self.db.query(ClaimedCouponRecord)
            .filter(
                ClaimedCouponRecord.user_id == user_id,
                ClaimedCouponRecord.coupon_id == coupon_id,
                ClaimedCouponRecord.status.in_([s.value for s in statuses]),
            )
            .all()
        )

    def list_by_user(self, user_id: str) -> List[ClaimedCouponRecord]:
        return (
            self.db.query(ClaimedCouponRecord)
            .filter(ClaimedCouponRecord.user_id == user_id)
            .order_by(ClaimedCouponRecord.claimed_at.desc())
            .all()
        )


class CreditTransactionRepository:
    """Repository for the append-only credit audit log"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        user_id: str,
        kind: CreditTransactionKind,
        amount: int,
        description: str,
        now: datetime,
        reference_id: Optional[str] = None,
    ) -> CreditTransactionRecord:
        entry = CreditTransactionRecord(
            id=new_id(),
            user_id=user_id,
            kind=kind.value,
            amount=amount,
            description=description,
            reference_id=reference_id,
            created_at=now,
        )
        self.db.add(entry)
        return entry

    def list_by_user(self, user_id: str) -> List[CreditTransactionRecord]:
        return (
            self.db.query(CreditTransactionRecord)
            .filter(CreditTransactionRecord.user_id == user_id)
            .order_by(CreditTransactionRecord.created_at.desc())
            .all()
        )

"""SQLAlchemy ORM models, one table per ledger collection"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Integer, Text, JSON, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


class UserAccount(Base):
    """User profile record owning the credit balance"""

    __tablename__ = "user_accounts"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    credits = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Conditional commit: UPDATE ... WHERE version = <read version>
    __mapper_args__ = {"version_id_col": version}


class Recycler(Base):
    """Recycler profile record"""

    __tablename__ = "recyclers"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class AppointmentRecord(Base):
    """Scheduled pickup"""

    __tablename__ = "appointments"

    id = Column(String(64), primary_key=True, default=new_id)
    client_id = Column(String(64), nullable=False, index=True)
    recycler_id = Column(String(64), nullable=True, index=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    address = Column(Text, nullable=False)
    approx_quantity_kg = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    materials = Column(JSON, nullable=False, default=list)
    status = Column(String(16), nullable=False, default="pending")
    rejection_reason = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __mapper_args__ = {"version_id_col": version}


class AppointmentCompletionRecord(Base):
    """Immutable evidence-and-settlement record, keyed by the appointment id"""

    __tablename__ = "appointment_completions"

    id = Column(String(64), primary_key=True)
    photos = Column(JSON, nullable=False)
    total_weight_kg = Column(Float, nullable=False)
    materials = Column(JSON, nullable=False)  # [{"type": ..., "qty_kg": ...}]
    container_count = Column(Integer, nullable=False)
    observations = Column(Text, nullable=False)
    monetary_value = Column(BigInteger, nullable=False)
    credits_awarded = Column(BigInteger, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False)


class CouponRecord(Base):
    """Redeemable reward definition"""

    __tablename__ = "coupons"

    id = Column(String(64), primary_key=True, default=new_id)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    credit_cost = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=False)
    issuer = Column(Text, nullable=False)
    discount_value = Column(BigInteger, nullable=True)
    discount_percentage = Column(Float, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    available_units = Column(Integer, nullable=True)  # NULL = unbounded
    active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ClaimedCouponRecord(Base):
    """Coupon redemption record"""

    __tablename__ = "claimed_coupons"

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False)
    coupon_id = Column(String(64), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    redemption_code = Column(String(32), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_claimed_coupons_user_coupon", "user_id", "coupon_id"),)


class CreditTransactionRecord(Base):
    """Append-only credit audit log entry"""

    __tablename__ = "credit_transactions"

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(16), nullable=False)
    amount = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False)
    reference_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

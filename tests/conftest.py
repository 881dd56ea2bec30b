"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List, Optional
from fastapi.testclient import TestClient
from recycle_ledger.api.main import create_app
from recycle_ledger.config import Settings
from recycle_ledger.domain.models import AppointmentStatus, CompletionSubmission, MaterialEntry
from recycle_ledger.infrastructure.database.ledger import LedgerStore, create_ledger_store, create_schema
from recycle_ledger.infrastructure.database.models import AppointmentRecord, CouponRecord, new_id
from recycle_ledger.infrastructure.database.repositories import RecyclerRepository, UserRepository

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def store(tmp_path) -> Generator[LedgerStore, None, None]:
    """File-backed SQLite ledger so worker threads share one database"""
    ledger = create_ledger_store(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        max_attempts=50,
        backoff_base=0.001,
    )
    create_schema(ledger)
    try:
        yield ledger
    finally:
        ledger.engine.dispose()


@pytest.fixture
def client(store: LedgerStore) -> TestClient:
    """Create FastAPI test client bound to the test ledger"""
    app_settings = Settings(database_url="sqlite://", create_schema_on_startup=False)
    app = create_app(app_settings, store=store)
    return TestClient(app)


@pytest.fixture
def make_user(store: LedgerStore) -> Callable[..., str]:
    """Seed a user account with a starting balance"""

    def _make(credits: int = 0, user_id: Optional[str] = None) -> str:
        def body(db):
            user = UserRepository(db).create(NOW, user_id=user_id, name="Test User")
            user.credits = credits
            return user.id

        return store.atomically(body, name="seed_user")

    return _make


@pytest.fixture
def make_recycler(store: LedgerStore) -> Callable[..., str]:
    def _make(name: str = "Green Pickup Co") -> str:
        return store.atomically(lambda db: RecyclerRepository(db).create(name, NOW).id, name="seed_recycler")

    return _make


@pytest.fixture
def make_appointment(store: LedgerStore) -> Callable[..., str]:
    """Seed an appointment directly in the given state"""

    def _make(
        client_id: str,
        status: AppointmentStatus = AppointmentStatus.APPROVED,
        recycler_id: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> str:
        def body(db):
            record = AppointmentRecord(
                id=new_id(),
                client_id=client_id,
                recycler_id=recycler_id,
                scheduled_at=NOW + timedelta(days=1),
                address="123 Main St",
                materials=["plastic"],
                status=status.value,
                rejection_reason=rejection_reason,
                created_at=NOW,
                updated_at=NOW,
            )
            db.add(record)
            return record.id

        return store.atomically(body, name="seed_appointment")

    return _make


@pytest.fixture
def make_coupon(store: LedgerStore) -> Callable[..., str]:
    def _make(
        credit_cost: int = 100,
        available_units: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        active: bool = True,
        category: str = "food",
        issuer: str = "Corner Cafe",
    ) -> str:
        def body(db):
            record = CouponRecord(
                id=new_id(),
                title=f"{credit_cost} credit coupon",
                description="Test coupon",
                credit_cost=credit_cost,
                category=category,
                issuer=issuer,
                discount_percentage=10.0,
                expires_at=expires_at,
                available_units=available_units,
                active=active,
                created_at=NOW,
                updated_at=NOW,
            )
            db.add(record)
            return record.id

        return store.atomically(body, name="seed_coupon")

    return _make


def make_submission(
    materials: Optional[List[MaterialEntry]] = None,
    total_weight_kg: float = 10.0,
    container_count: int = 2,
    photos: Optional[List[str]] = None,
    observations: str = "Clean sorted plastic bottles",
) -> CompletionSubmission:
    """Valid submission: 10kg plastic, worth 100 credits"""
    return CompletionSubmission(
        photos=photos if photos is not None else ["https://cdn.example.com/pickups/p1.jpg"],
        total_weight_kg=total_weight_kg,
        materials=materials if materials is not None else [MaterialEntry(type="plastic", qty_kg=10.0)],
        container_count=container_count,
        observations=observations,
    )


@pytest.fixture
def submission() -> CompletionSubmission:
    return make_submission()


@pytest.fixture
def submission_factory() -> Callable[..., CompletionSubmission]:
    return make_submission


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return fixed_clock

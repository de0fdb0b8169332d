"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from astral_forecast.api.main import create_app
from astral_forecast.infrastructure.database.models import Base
from astral_forecast.infrastructure.database.session import build_engine, get_db, init_db
from astral_forecast.domain.models import BillHistoryEntry, RecurringObligation, Transaction


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    init_db(engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def rent() -> RecurringObligation:
    return RecurringObligation(
        obligation_id="rent",
        name="Rent",
        category="housing",
        amount_cents=150000,
        cadence="monthly",
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def electric_bill() -> RecurringObligation:
    return RecurringObligation(
        obligation_id="electric",
        name="Electric Bill",
        category="utilities",
        amount_cents=10000,
        cadence="monthly",
        start_date=date(2023, 1, 15),
    )


@pytest.fixture
def make_history():
    """Build a bill history 30 days apart, oldest amount first"""

    def _make(obligation_id: str, amounts: List[int], first_bill: date, estimated_cents: int = 10000):
        return [
            BillHistoryEntry(
                entry_id=f"{obligation_id}-{i}",
                obligation_id=obligation_id,
                actual_amount_cents=amount,
                estimated_amount_cents=estimated_cents,
                bill_date=first_bill + timedelta(days=30 * i),
                is_paid=True,
            )
            for i, amount in enumerate(amounts)
        ]

    return _make


@pytest.fixture
def sample_transactions() -> List[Transaction]:
    """Two weeks of groceries and one salary deposit ending on 2024-06-30"""
    transactions = [
        Transaction(
            transaction_id="salary",
            date=date(2024, 6, 1),
            amount_cents=300000,  # $3000 income
            type="income",
            category="salary",
            description="Salary Deposit",
        )
    ]

    for day in range(0, 14, 7):
        transactions.append(
            Transaction(
                transaction_id=f"groceries_{day}",
                date=date(2024, 6, 16) + timedelta(days=day),
                amount_cents=50000,  # $500 weekly spending
                type="expense",
                category="groceries",
                description="Supermarket",
            )
        )

    return transactions

"""
Pytest fixtures for the recurring budget run test suite.

Provides:
- In-memory SQLite engine/session factory with all tables created
- ``store_factory`` (one storage transaction per call), as the executor uses it
- Seed helpers for budget categories, recurring incomes and fixed costs
- Structured-log capture

No external database is required.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from budget_kernel.db.engine import create_tables
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.models import (
    BudgetCategoryModel,
    FixedCostModel,
    RecurringIncomeModel,
)
from budget_kernel.storage import store_scope

# Anchor point used across the suite: shortly after a month boundary
RUN_AT = datetime(2024, 2, 1, 0, 30, tzinfo=timezone.utc)
TEST_OWNER_ID = "user-001"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, executor):
            executor.execute()
            logs = captured_logs()
            assert any(r["message"] == "run_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(RUN_AT)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def store_factory(session_factory):
    """Zero-arg callable returning a ``store_scope`` context manager."""
    return lambda: store_scope(session_factory)


# =============================================================================
# Seed helpers
# =============================================================================


def _persist(session_factory, model: Any) -> UUID:
    with session_factory() as sess:
        sess.add(model)
        sess.commit()
        return model.id


@pytest.fixture
def add_budget(session_factory):
    """Insert a budget category; returns its id."""

    def _add(
        category: str = "Groceries",
        budget: str = "500",
        balance: str = "120",
        period: str = "monthly",
        last_reset: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
        owner_id: str = TEST_OWNER_ID,
    ) -> UUID:
        return _persist(session_factory, BudgetCategoryModel(
            id=uuid4(),
            owner_id=owner_id,
            category=category,
            budget=Decimal(budget),
            balance=Decimal(balance),
            period=period,
            last_reset=last_reset,
            created_at=datetime(2023, 12, 1, tzinfo=timezone.utc),
        ))

    return _add


@pytest.fixture
def add_income(session_factory):
    """Insert a recurring income; returns its id."""

    def _add(
        source_name: str = "Salary",
        amount: str = "2500",
        frequency: str = "monthly",
        recurring: bool = True,
        received_on: date | None = date(2024, 1, 1),
        last_processed_on: date | None = None,
        created_at: datetime = datetime(2023, 12, 1, tzinfo=timezone.utc),
        owner_id: str = TEST_OWNER_ID,
    ) -> UUID:
        return _persist(session_factory, RecurringIncomeModel(
            id=uuid4(),
            owner_id=owner_id,
            source_name=source_name,
            amount=Decimal(amount),
            frequency=frequency,
            recurring=recurring,
            received_on=received_on,
            last_processed_on=last_processed_on,
            created_at=created_at,
        ))

    return _add


@pytest.fixture
def add_fixed_cost(session_factory):
    """Insert a fixed cost; returns its id."""

    def _add(
        name: str = "Rent",
        amount: str = "50",
        frequency: str = "monthly",
        category_id: UUID | None = None,
        start_date: date | None = date(2024, 1, 1),
        end_date: date | None = None,
        last_processed_at: datetime | None = None,
        created_at: datetime = datetime(2023, 12, 1, tzinfo=timezone.utc),
        owner_id: str = TEST_OWNER_ID,
    ) -> UUID:
        return _persist(session_factory, FixedCostModel(
            id=uuid4(),
            owner_id=owner_id,
            name=name,
            amount=Decimal(amount),
            frequency=frequency,
            category_id=category_id,
            start_date=start_date,
            end_date=end_date,
            last_processed_at=last_processed_at,
            created_at=created_at,
        ))

    return _add

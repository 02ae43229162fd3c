"""
Tests for budget_kernel.storage.sql -- SqlLedgerStore and store_scope.

Focus: candidate queries, conditional claims (the overlap guard), and the
in-database balance delta.  Uses in-memory SQLite.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from budget_kernel.domain.types import LedgerTransaction, TransactionType
from budget_kernel.exceptions import (
    BudgetCategoryNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from budget_kernel.models import (
    BudgetCategoryModel,
    FixedCostModel,
    LedgerTransactionModel,
    RecurringIncomeModel,
)
from budget_kernel.storage import LedgerStore, SqlLedgerStore, store_scope

RUN_AT = datetime(2024, 2, 1, 0, 30, tzinfo=timezone.utc)


def _balance(session_factory, budget_id) -> Decimal:
    with session_factory() as sess:
        return sess.get(BudgetCategoryModel, budget_id).balance


class TestProtocol:

    def test_sql_store_satisfies_protocol(self, session):
        assert isinstance(SqlLedgerStore(session), LedgerStore)


class TestCandidateQueries:

    def test_resettable_budgets_exclude_savings(self, store_factory, add_budget):
        weekly = add_budget(category="Food", period="weekly")
        monthly = add_budget(category="Fun", period="monthly")
        add_budget(category="Rainy day", period="savings")

        with store_factory() as store:
            budgets = store.list_resettable_budgets()

        assert {b.budget_id for b in budgets} == {weekly, monthly}

    def test_recurring_incomes_only(self, store_factory, add_income):
        recurring = add_income(source_name="Salary")
        add_income(source_name="Gift", recurring=False)

        with store_factory() as store:
            incomes = store.list_recurring_incomes()

        assert [i.income_id for i in incomes] == [recurring]

    def test_active_fixed_costs_window(self, store_factory, add_fixed_cost):
        open_ended = add_fixed_cost(name="Rent", start_date=None)
        current = add_fixed_cost(
            name="Gym", start_date=date(2024, 1, 1), end_date=date(2024, 2, 1),
        )
        add_fixed_cost(name="Future", start_date=date(2024, 3, 1))
        add_fixed_cost(name="Ended", end_date=date(2024, 1, 31))

        with store_factory() as store:
            costs = store.list_active_fixed_costs(date(2024, 2, 1))

        assert {fc.fixed_cost_id for fc in costs} == {open_ended, current}

    def test_snapshots_are_utc_aware(self, store_factory, add_budget):
        add_budget(last_reset=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))

        with store_factory() as store:
            (budget,) = store.list_resettable_budgets()

        assert budget.last_reset == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert budget.created_at.tzinfo is not None

    def test_get_missing_category_returns_none(self, store_factory):
        with store_factory() as store:
            assert store.get_budget_category(uuid4()) is None


class TestBudgetResetClaim:

    def test_reset_overwrites_balance_and_anchor(
        self, store_factory, session_factory, add_budget,
    ):
        last_reset = datetime(2024, 1, 1, tzinfo=timezone.utc)
        budget_id = add_budget(budget="500", balance="-20", last_reset=last_reset)

        with store_factory() as store:
            assert store.reset_budget_balance(
                budget_id, Decimal("500"), RUN_AT, expected_last_reset=last_reset,
            )

        with store_factory() as store:
            budget = store.get_budget_category(budget_id)
        assert budget.balance == Decimal("500")
        assert budget.last_reset == RUN_AT

    def test_stale_anchor_loses_claim(self, store_factory, session_factory, add_budget):
        last_reset = datetime(2024, 1, 1, tzinfo=timezone.utc)
        budget_id = add_budget(balance="75", last_reset=last_reset)

        with store_factory() as store:
            assert store.reset_budget_balance(budget_id, Decimal("500"), RUN_AT, last_reset)

        # A second run that read the same snapshot must not reset again
        with store_factory() as store:
            assert not store.reset_budget_balance(
                budget_id, Decimal("500"), RUN_AT, last_reset,
            )


class TestAnchorClaims:

    def test_income_claim_from_null(self, store_factory, session_factory, add_income):
        income_id = add_income(last_processed_on=None)

        with store_factory() as store:
            assert store.advance_income_anchor(income_id, date(2024, 2, 1), expected=None)
        with store_factory() as store:
            assert not store.advance_income_anchor(income_id, date(2024, 2, 1), expected=None)

        with session_factory() as sess:
            income = sess.get(RecurringIncomeModel, income_id)
            assert income.last_processed_on == date(2024, 2, 1)
            assert income.received_on == date(2024, 1, 1)

    def test_income_claim_from_previous_date(self, store_factory, add_income):
        income_id = add_income(last_processed_on=date(2024, 1, 1))

        with store_factory() as store:
            assert not store.advance_income_anchor(
                income_id, date(2024, 2, 1), expected=date(2023, 12, 1),
            )
            assert store.advance_income_anchor(
                income_id, date(2024, 2, 1), expected=date(2024, 1, 1),
            )

    def test_fixed_cost_claim_with_timestamp(
        self, store_factory, session_factory, add_fixed_cost,
    ):
        previous = datetime(2024, 1, 1, 0, 15, tzinfo=timezone.utc)
        fc_id = add_fixed_cost(last_processed_at=previous)

        with store_factory() as store:
            assert store.advance_fixed_cost_anchor(fc_id, RUN_AT, expected=previous)
        with store_factory() as store:
            assert not store.advance_fixed_cost_anchor(fc_id, RUN_AT, expected=previous)

        with session_factory() as sess:
            fc = sess.get(FixedCostModel, fc_id)
            assert fc.to_dto().last_processed_at == RUN_AT
            assert fc.updated_at is None


class TestBalanceDelta:

    def test_delta_is_applied_in_place(self, store_factory, session_factory, add_budget):
        budget_id = add_budget(balance="500")

        with store_factory() as store:
            store.apply_budget_delta(budget_id, Decimal("-50"))
            store.apply_budget_delta(budget_id, Decimal("-25.5"))

        assert _balance(session_factory, budget_id) == Decimal("424.5")

    def test_missing_category_raises(self, store_factory):
        with pytest.raises(BudgetCategoryNotFoundError):
            with store_factory() as store:
                store.apply_budget_delta(uuid4(), Decimal("-1"))


class TestStoreScope:

    def test_rollback_on_error(self, store_factory, session_factory, add_budget):
        budget_id = add_budget(balance="500")

        with pytest.raises(RuntimeError):
            with store_factory() as store:
                store.apply_budget_delta(budget_id, Decimal("-50"))
                store.insert_ledger_transaction(LedgerTransaction(
                    transaction_id=uuid4(),
                    owner_id="user-001",
                    name="Fixed Cost: Rent",
                    amount=Decimal("50"),
                    type=TransactionType.EXPENSE,
                    created_at=RUN_AT,
                    category_name="Groceries",
                    category_id=budget_id,
                ))
                raise RuntimeError("crash mid-item")

        assert _balance(session_factory, budget_id) == Decimal("500")
        with session_factory() as sess:
            assert sess.execute(select(LedgerTransactionModel)).first() is None

    def test_commit_on_success(self, store_factory, session_factory):
        txn_id = uuid4()
        with store_factory() as store:
            store.insert_ledger_transaction(LedgerTransaction(
                transaction_id=txn_id,
                owner_id="user-001",
                name="Recurring: Salary",
                amount=Decimal("2500"),
                type=TransactionType.INCOME,
                created_at=RUN_AT,
                category_name="Salary",
            ))

        with session_factory() as sess:
            row = sess.get(LedgerTransactionModel, txn_id)
            assert row.to_dto().type == TransactionType.INCOME
            assert row.category_id is None


class TestErrorTranslation:

    def test_ping_succeeds(self, store_factory):
        with store_factory() as store:
            store.ping()

    def test_unreachable_database_raises_unavailable(self, tmp_path):
        missing = tmp_path / "no_such_dir" / "budget.db"
        engine = create_engine(f"sqlite:///{missing}")
        try:
            with pytest.raises(StorageUnavailableError) as exc_info:
                with store_scope(lambda: Session(engine)) as store:
                    store.ping()
            assert exc_info.value.code == "STORAGE_UNAVAILABLE"
        finally:
            engine.dispose()

    def test_query_error_wrapped(self, tmp_path):
        # Tables were never created on this engine
        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        try:
            with pytest.raises(StorageError) as exc_info:
                with store_scope(lambda: Session(engine)) as store:
                    store.list_recurring_incomes()
            assert exc_info.value.operation == "list_recurring_incomes"
        finally:
            engine.dispose()

    def test_failed_category_lookup_keeps_transaction_usable(self, tmp_path):
        # Only the transactions table exists, so the category lookup fails
        engine = create_engine(f"sqlite:///{tmp_path / 'partial.db'}")
        LedgerTransactionModel.__table__.create(engine)
        txn_id = uuid4()
        try:
            with store_scope(lambda: Session(engine)) as store:
                with pytest.raises(StorageError) as exc_info:
                    store.get_budget_category(uuid4())
                store.insert_ledger_transaction(LedgerTransaction(
                    transaction_id=txn_id,
                    owner_id="user-001",
                    name="Fixed Cost: Gym",
                    amount=Decimal("30"),
                    type=TransactionType.EXPENSE,
                    created_at=RUN_AT,
                    category_name="Fixed Cost",
                ))

            assert exc_info.value.operation == "get_budget_category"
            with Session(engine) as sess:
                assert sess.get(LedgerTransactionModel, txn_id) is not None
        finally:
            engine.dispose()

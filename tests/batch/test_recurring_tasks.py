"""
Tests for budget_batch.tasks -- the three recurring tasks and the registry.

Each task is exercised against a real SqlLedgerStore on in-memory SQLite.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from budget_batch.domain.types import RunItemKind, RunItemStatus
from budget_batch.tasks import (
    BudgetResetTask,
    FixedCostMaterializationTask,
    IncomeMaterializationTask,
    TaskRegistry,
    default_task_registry,
)
from budget_kernel.exceptions import StorageError, TaskNotRegisteredError
from budget_kernel.models import (
    BudgetCategoryModel,
    FixedCostModel,
    LedgerTransactionModel,
    RecurringIncomeModel,
)

RUN_AT = datetime(2024, 2, 1, 0, 30, tzinfo=timezone.utc)


def _prepare(task, store_factory):
    with store_factory() as store:
        candidates = task.fetch_candidates(store, RUN_AT)
    return task.prepare_items(candidates, RUN_AT)


class _UnreadableCategoryStore:
    """Delegates to a real store; category lookups time out."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    def get_budget_category(self, budget_id):
        raise StorageError("get_budget_category", "lookup timed out")


def _transactions(session_factory) -> list[LedgerTransactionModel]:
    with session_factory() as sess:
        return list(sess.execute(select(LedgerTransactionModel)).scalars())


# =============================================================================
# Registry
# =============================================================================


class TestTaskRegistry:

    def test_default_order(self):
        registry = default_task_registry()
        assert [t.task_type for t in registry.tasks()] == [
            "budget.reset",
            "income.materialize",
            "fixed_cost.materialize",
        ]
        assert len(registry) == 3
        assert "income.materialize" in registry

    def test_duplicate_rejected(self):
        registry = TaskRegistry()
        registry.register(BudgetResetTask())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(BudgetResetTask())

    def test_unknown_task_type(self):
        with pytest.raises(TaskNotRegisteredError) as exc_info:
            default_task_registry().get("payroll.run")
        assert exc_info.value.code == "TASK_NOT_REGISTERED"

    def test_subset_keeps_registration_order(self):
        registry = default_task_registry()
        subset = registry.tasks(("fixed_cost.materialize", "budget.reset"))
        assert [t.task_type for t in subset] == ["budget.reset", "fixed_cost.materialize"]

    def test_subset_with_unknown_type(self):
        with pytest.raises(TaskNotRegisteredError):
            default_task_registry().tasks(("budget.reset", "nope"))


# =============================================================================
# Budget reset
# =============================================================================


class TestBudgetResetTask:

    def test_prepare_items(self, store_factory, add_budget):
        due_id = add_budget(period="monthly", last_reset=datetime(2024, 1, 31, 23, 0, tzinfo=timezone.utc))
        add_budget(period="monthly", last_reset=datetime(2024, 2, 1, 0, 5, tzinfo=timezone.utc))
        add_budget(period="savings")

        items = _prepare(BudgetResetTask(), store_factory)

        assert [i.item_key for i in items] == [str(due_id)]
        assert items[0].kind == RunItemKind.BUDGET_RESET
        assert items[0].lane_key == f"budget:{due_id}"
        assert items[0].frequency == "monthly"

    def test_reset_restores_nominal_amount(
        self, store_factory, session_factory, add_budget,
    ):
        budget_id = add_budget(budget="500", balance="-40")
        task = BudgetResetTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.status == RunItemStatus.SUCCEEDED
        assert Decimal(result.result_data["previous_balance"]) == Decimal("-40")
        assert Decimal(result.result_data["new_balance"]) == Decimal("500")
        assert result.result_data["next_due"] == "Next monthly processing: 2024-03-01"
        with session_factory() as sess:
            model = sess.get(BudgetCategoryModel, budget_id)
            assert model.balance == Decimal("500")
            assert model.to_dto().last_reset == RUN_AT

    def test_lost_claim_is_skipped(self, store_factory, add_budget, captured_logs):
        add_budget()
        task = BudgetResetTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            assert task.execute_item(item, store, RUN_AT).status == RunItemStatus.SUCCEEDED
        # Same stale snapshot, as an overlapping run would hold
        with store_factory() as store:
            assert task.execute_item(item, store, RUN_AT).status == RunItemStatus.SKIPPED

        assert any(r["message"] == "claim_lost" for r in captured_logs())


# =============================================================================
# Income
# =============================================================================


class TestIncomeMaterializationTask:

    def test_books_income_and_advances_marker(
        self, store_factory, session_factory, add_income,
    ):
        income_id = add_income(source_name="Salary", amount="2500")
        task = IncomeMaterializationTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.status == RunItemStatus.SUCCEEDED
        (txn,) = _transactions(session_factory)
        assert txn.name == "Recurring: Salary"
        assert txn.category_name == "Salary"
        assert txn.category_id is None
        assert txn.type == "income"
        assert txn.amount == Decimal("2500")
        assert result.result_data["transaction_id"] == str(txn.id)
        assert result.result_data["next_due"] == "Next monthly processing: 2024-03-01"

        with session_factory() as sess:
            income = sess.get(RecurringIncomeModel, income_id)
            assert income.last_processed_on == date(2024, 2, 1)
            assert income.received_on == date(2024, 1, 1)

    def test_second_claim_books_nothing(self, store_factory, session_factory, add_income):
        add_income()
        task = IncomeMaterializationTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            task.execute_item(item, store, RUN_AT)
        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.status == RunItemStatus.SKIPPED
        assert len(_transactions(session_factory)) == 1

    def test_lane_per_income(self, store_factory, add_income):
        first = add_income(source_name="Salary")
        second = add_income(source_name="Allowance")

        items = _prepare(IncomeMaterializationTask(), store_factory)

        assert {i.lane_key for i in items} == {f"income:{first}", f"income:{second}"}


# =============================================================================
# Fixed cost
# =============================================================================


class TestFixedCostMaterializationTask:

    def test_books_expense_and_decrements_category(
        self, store_factory, session_factory, add_budget, add_fixed_cost,
    ):
        budget_id = add_budget(category="Housing", balance="500", last_reset=RUN_AT)
        fc_id = add_fixed_cost(name="Rent", amount="50", category_id=budget_id)
        task = FixedCostMaterializationTask()
        (item,) = _prepare(task, store_factory)
        assert item.lane_key == f"budget:{budget_id}"

        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.status == RunItemStatus.SUCCEEDED
        assert result.result_data["budget_updated"] is True
        (txn,) = _transactions(session_factory)
        assert txn.name == "Fixed Cost: Rent"
        assert txn.category_name == "Housing"
        assert txn.category_id == budget_id
        assert txn.type == "expense"
        with session_factory() as sess:
            assert sess.get(BudgetCategoryModel, budget_id).balance == Decimal("450")
            fc = sess.get(FixedCostModel, fc_id).to_dto()
            assert fc.last_processed_at == RUN_AT
            assert fc.updated_at is None

    def test_missing_category_uses_placeholder(
        self, store_factory, session_factory, add_fixed_cost, captured_logs,
    ):
        add_fixed_cost(name="Gym", category_id=uuid4())
        task = FixedCostMaterializationTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.status == RunItemStatus.SUCCEEDED
        assert result.result_data["budget_updated"] is False
        (txn,) = _transactions(session_factory)
        assert txn.category_name == "Fixed Cost"
        assert any(r["message"] == "linked_category_missing" for r in captured_logs())

    def test_category_lookup_failure_uses_placeholder(
        self, store_factory, session_factory, add_budget, add_fixed_cost, captured_logs,
    ):
        budget_id = add_budget(category="Housing", balance="500", last_reset=RUN_AT)
        add_fixed_cost(name="Rent", amount="50", category_id=budget_id)
        task = FixedCostMaterializationTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            result = task.execute_item(item, _UnreadableCategoryStore(store), RUN_AT)

        assert result.status == RunItemStatus.SUCCEEDED
        assert result.result_data["budget_updated"] is False
        assert result.result_data["category_name"] == "Fixed Cost"
        (txn,) = _transactions(session_factory)
        assert txn.category_name == "Fixed Cost"
        with session_factory() as sess:
            assert sess.get(BudgetCategoryModel, budget_id).balance == Decimal("500")
        failed = next(
            r for r in captured_logs() if r["message"] == "linked_category_lookup_failed"
        )
        assert failed["exc_code"] == "STORAGE_ERROR"

    def test_reports_next_due(self, store_factory, add_fixed_cost):
        add_fixed_cost(frequency="weekly", start_date=date(2024, 1, 1))
        task = FixedCostMaterializationTask()
        (item,) = _prepare(task, store_factory)

        with store_factory() as store:
            result = task.execute_item(item, store, RUN_AT)

        assert result.result_data["next_due"] == "Next weekly processing: 2024-02-08"

    def test_uncategorized_lane(self, store_factory, add_fixed_cost):
        fc_id = add_fixed_cost(category_id=None)
        (item,) = _prepare(FixedCostMaterializationTask(), store_factory)
        assert item.lane_key == f"fixed_cost:{fc_id}"

    def test_inactive_not_prepared(self, store_factory, add_fixed_cost):
        add_fixed_cost(start_date=date(2024, 3, 1))
        add_fixed_cost(end_date=date(2024, 1, 31))
        assert _prepare(FixedCostMaterializationTask(), store_factory) == ()

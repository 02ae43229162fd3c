"""
SqlLedgerStore -- SQLAlchemy implementation of ``LedgerStore``.

Contract:
    Wraps one ``Session``.  Does NOT commit; ``store_scope()`` owns the
    transaction so that each recurring item commits or rolls back as a unit.

Invariants enforced:
    - Claims are one ``UPDATE ... WHERE id = :id AND anchor = :expected``
      (``IS NULL`` for a never-processed item).  ``rowcount == 1`` means the
      claim was won.  Two overlapping runs can never both win.
    - ``apply_budget_delta`` is computed in the database
      (``balance = balance + :delta``), never read-modify-write.

Failure modes:
    - StorageUnavailableError from ``ping()`` when the database is unreachable.
    - StorageError wrapping any other SQLAlchemyError.
    - BudgetCategoryNotFoundError when a delta targets a missing category.
    - ``get_budget_category`` runs in a SAVEPOINT, so a failed lookup rolls
      back only itself and the caller may continue the transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Generator
from uuid import UUID

from sqlalchemy import or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import (
    RESETTABLE_PERIODS,
    BudgetCategory,
    FixedCost,
    LedgerTransaction,
    RecurringIncome,
)
from budget_kernel.exceptions import (
    BudgetCategoryNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models import (
    BudgetCategoryModel,
    FixedCostModel,
    LedgerTransactionModel,
    RecurringIncomeModel,
)

logger = get_logger("storage.sql")


def _anchor_matches(column: Any, expected: Any) -> Any:
    if expected is None:
        return column.is_(None)
    return column == expected


@contextmanager
def _translate_errors(operation: str) -> Generator[None, None, None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(operation, str(exc)) from exc


class SqlLedgerStore:
    """``LedgerStore`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # -------------------------------------------------------------------------
    # Connectivity
    # -------------------------------------------------------------------------

    def ping(self) -> None:
        try:
            self._session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("storage_ping_failed", extra={"detail": str(exc)})
            raise StorageUnavailableError(str(exc)) from exc

    # -------------------------------------------------------------------------
    # Candidate queries
    # -------------------------------------------------------------------------

    def list_resettable_budgets(self) -> tuple[BudgetCategory, ...]:
        with _translate_errors("list_resettable_budgets"):
            models = self._session.execute(
                select(BudgetCategoryModel)
                .where(BudgetCategoryModel.period.in_(sorted(RESETTABLE_PERIODS)))
                .order_by(BudgetCategoryModel.last_reset)
            ).scalars().all()
        return tuple(m.to_dto() for m in models)

    def list_recurring_incomes(self) -> tuple[RecurringIncome, ...]:
        with _translate_errors("list_recurring_incomes"):
            models = self._session.execute(
                select(RecurringIncomeModel)
                .where(RecurringIncomeModel.recurring == True)  # noqa: E712
                .order_by(RecurringIncomeModel.created_at)
            ).scalars().all()
        return tuple(m.to_dto() for m in models)

    def list_active_fixed_costs(self, today: date) -> tuple[FixedCost, ...]:
        with _translate_errors("list_active_fixed_costs"):
            models = self._session.execute(
                select(FixedCostModel)
                .where(
                    or_(
                        FixedCostModel.start_date.is_(None),
                        FixedCostModel.start_date <= today,
                    ),
                    or_(
                        FixedCostModel.end_date.is_(None),
                        FixedCostModel.end_date >= today,
                    ),
                )
                .order_by(FixedCostModel.created_at)
            ).scalars().all()
        return tuple(m.to_dto() for m in models)

    def get_budget_category(self, budget_id: UUID) -> BudgetCategory | None:
        # SAVEPOINT: a failed lookup leaves the item's transaction usable
        with _translate_errors("get_budget_category"):
            with self._session.begin_nested():
                model = self._session.get(BudgetCategoryModel, budget_id)
        return model.to_dto() if model is not None else None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def reset_budget_balance(
        self,
        budget_id: UUID,
        new_balance: Decimal,
        reset_at: datetime,
        expected_last_reset: datetime,
    ) -> bool:
        with _translate_errors("reset_budget_balance"):
            result = self._session.execute(
                update(BudgetCategoryModel)
                .where(
                    BudgetCategoryModel.id == budget_id,
                    BudgetCategoryModel.last_reset == as_utc(expected_last_reset),
                )
                .values(balance=new_balance, last_reset=as_utc(reset_at))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    def apply_budget_delta(self, budget_id: UUID, delta: Decimal) -> None:
        with _translate_errors("apply_budget_delta"):
            result = self._session.execute(
                update(BudgetCategoryModel)
                .where(BudgetCategoryModel.id == budget_id)
                .values(balance=BudgetCategoryModel.balance + delta)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount == 0:
            raise BudgetCategoryNotFoundError(str(budget_id))

    def insert_ledger_transaction(
        self, record: LedgerTransaction,
    ) -> LedgerTransaction:
        with _translate_errors("insert_ledger_transaction"):
            self._session.add(LedgerTransactionModel.from_dto(record))
            self._session.flush()
        return record

    def advance_income_anchor(
        self,
        income_id: UUID,
        processed_on: date,
        expected: date | None,
    ) -> bool:
        with _translate_errors("advance_income_anchor"):
            result = self._session.execute(
                update(RecurringIncomeModel)
                .where(
                    RecurringIncomeModel.id == income_id,
                    _anchor_matches(RecurringIncomeModel.last_processed_on, expected),
                )
                .values(last_processed_on=processed_on)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    def advance_fixed_cost_anchor(
        self,
        fixed_cost_id: UUID,
        processed_at: datetime,
        expected: datetime | None,
    ) -> bool:
        expected_utc = as_utc(expected) if expected is not None else None
        with _translate_errors("advance_fixed_cost_anchor"):
            result = self._session.execute(
                update(FixedCostModel)
                .where(
                    FixedCostModel.id == fixed_cost_id,
                    _anchor_matches(FixedCostModel.last_processed_at, expected_utc),
                )
                .values(last_processed_at=as_utc(processed_at))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1


@contextmanager
def store_scope(
    session_factory: Callable[[], Session],
) -> Generator[SqlLedgerStore, None, None]:
    """
    One storage transaction around a ``SqlLedgerStore``.

    Commits on normal exit; rolls back and re-raises on exception.
    """
    session = session_factory()
    try:
        yield SqlLedgerStore(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

"""ORM models for the four persisted ledger entities."""

from budget_kernel.models.budget import BudgetCategoryModel
from budget_kernel.models.recurring import FixedCostModel, RecurringIncomeModel
from budget_kernel.models.transaction import LedgerTransactionModel

__all__ = [
    "BudgetCategoryModel",
    "FixedCostModel",
    "LedgerTransactionModel",
    "RecurringIncomeModel",
]

"""Storage collaborator for the recurring run: protocol + SQLAlchemy implementation."""

from budget_kernel.storage.interface import LedgerStore
from budget_kernel.storage.sql import SqlLedgerStore, store_scope

__all__ = ["LedgerStore", "SqlLedgerStore", "store_scope"]

"""
budget_kernel -- Ledger entities, storage, and shared infrastructure.

Holds the pieces every other package relies on: the injectable clock,
structured logging, the typed exception hierarchy, SQLAlchemy models for
budget categories, recurring incomes, fixed costs and ledger transactions,
and the ``LedgerStore`` storage collaborator.

Architecture:
    Nothing in budget_kernel imports from budget_batch or budget_config.
"""

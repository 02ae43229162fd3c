"""
budget_batch -- Recurring budget run.

On each scheduled run: reset weekly and monthly budget balances whose
period rolled over, book due recurring incomes, and book due fixed costs
against their budget categories.  Every item runs in its own storage
transaction; one failing item never aborts the run.

Architecture:
    budget_batch/ is a top-level package.  Nothing in budget_kernel
    imports from budget_batch.

Invariants:
    - Clock injection (no datetime.now() calls outside SystemClock)
    - Due evaluation is pure (budget_batch.domain)
    - Claim before mutate: conditional anchor writes, so overlapping runs
      never book the same period twice
    - Per-item error isolation
"""

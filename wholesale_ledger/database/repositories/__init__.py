# wholesale_ledger/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from wholesale_ledger.database.repositories import (
        # Catalog
        ProductsRepo, Product, StockJournalRepo,
        RewardsRepo, Reward, RewardRule,
        # People
        EmployeesRepo, Employee,
        # Ledger
        LedgerRepo, LedgerEntry, LedgerItem, DamagedItem, RewardItem,
        DailySummariesRepo, DailySummary,
        # Receivables
        ReceivablesRepo, Receivable,
    )
"""

# ---------------- Products -----------------
from .products_repo import (
    ProductsRepo,
    Product,
    DomainError as ProductsDomainError,
)
from .stock_journal_repo import StockJournalRepo

# ---------------- Rewards ------------------
from .rewards_repo import (
    RewardsRepo,
    Reward,
    RewardRule,
    DomainError as RewardsDomainError,
)

# ---------------- Employees ----------------
from .employees_repo import (
    EmployeesRepo,
    Employee,
    DomainError as EmployeesDomainError,
)

# ----------------- Ledger ------------------
from .ledger_repo import (
    LedgerRepo,
    LedgerEntry,
    LedgerItem,
    DamagedItem,
    RewardItem,
    DomainError as LedgerDomainError,
)
from .daily_summaries_repo import (
    DailySummariesRepo,
    DailySummary,
    DomainError as DailySummariesDomainError,
)

# --------------- Receivables ---------------
from .receivables_repo import (
    ReceivablesRepo,
    Receivable,
    DomainError as ReceivablesDomainError,
)

__all__ = [
    # products_repo
    "ProductsRepo",
    "Product",
    "ProductsDomainError",
    "StockJournalRepo",
    # rewards_repo
    "RewardsRepo",
    "Reward",
    "RewardRule",
    "RewardsDomainError",
    # employees_repo
    "EmployeesRepo",
    "Employee",
    "EmployeesDomainError",
    # ledger_repo
    "LedgerRepo",
    "LedgerEntry",
    "LedgerItem",
    "DamagedItem",
    "RewardItem",
    "LedgerDomainError",
    "DailySummariesRepo",
    "DailySummary",
    "DailySummariesDomainError",
    # receivables_repo
    "ReceivablesRepo",
    "Receivable",
    "ReceivablesDomainError",
]

# wholesale_ledger/modules/ledger/__init__.py

from .lifecycle import (
    LedgerLifecycle,
    LedgerNotFoundError,
    LedgerValidationError,
)

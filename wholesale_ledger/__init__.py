"""Wholesale ledger: sales ledger entries reconciled against stock and employee receivables."""

__version__ = "1.0.0"

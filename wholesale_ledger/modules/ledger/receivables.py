"""
ledger/receivables.py

Employee receivable postings derived from a ledger entry:
  - amount_due > 0  -> one 'due' row for due_assigned_to        (origin ledger_due)
  - commission > 0  -> one 'due' row for commission_assigned_to (origin ledger_commission)

A negative amount_due produces nothing. Payments recorded against the entry
(origin ledger_payment) and manual rows are never touched here.
"""
from __future__ import annotations

import logging
from typing import List

from ...database.repositories.ledger_repo import LedgerEntry
from ...database.repositories.receivables_repo import (
    ORIGIN_LEDGER_COMMISSION,
    ORIGIN_LEDGER_DUE,
    Receivable,
    ReceivablesRepo,
)

__all__ = ["derive_postings", "regenerate"]

_log = logging.getLogger(__name__)


def derive_postings(entry: LedgerEntry) -> List[Receivable]:
    if entry.ledger_id is None:
        raise ValueError("derive_postings needs a stored ledger entry (ledger_id is None)")

    postings: List[Receivable] = []
    wanted = (
        (entry.amount_due, entry.due_assigned_to, ORIGIN_LEDGER_DUE, "Due from Ledger #{}"),
        (entry.commission, entry.commission_assigned_to, ORIGIN_LEDGER_COMMISSION, "Commission from Ledger #{}"),
    )
    for amount, employee_id, origin, note in wanted:
        if not amount or amount <= 0:
            continue
        if employee_id is None:
            _log.warning(
                "Ledger #%s has %s %.2f but no assignee; posting skipped",
                entry.ledger_id, origin, amount,
            )
            continue
        postings.append(
            Receivable(
                receivable_id=None,
                employee_id=int(employee_id),
                date=entry.date,
                type="due",
                amount=float(amount),
                note=note.format(entry.ledger_id),
                origin=origin,
                ledger_id=entry.ledger_id,
            )
        )
    return postings


def regenerate(repo: ReceivablesRepo, entry: LedgerEntry) -> List[Receivable]:
    """
    Replace the entry's derived postings with freshly derived ones.
    Idempotent; runs inside the caller's transaction.
    """
    postings = derive_postings(entry)
    removed = repo.delete_ledger_postings(entry.ledger_id)
    repo.insert_postings(postings)
    _log.debug(
        "Ledger #%s receivables regenerated (removed=%d, inserted=%d)",
        entry.ledger_id, removed, len(postings),
    )
    return postings

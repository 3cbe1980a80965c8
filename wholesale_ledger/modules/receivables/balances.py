"""
receivables/balances.py

Employee balance = sum(due) - sum(payment) over the employee's receivable
rows. Positive means the employee owes the business.

These folds run over rows already loaded in memory. The database view
v_employee_balance computes the same figure set-based; both must agree.
"""
from __future__ import annotations

from typing import Dict, Iterable

from ...database.repositories.receivables_repo import Receivable
from ...utils.helpers import round_money

__all__ = ["signed_amount", "employee_balance", "balances_by_employee"]


def signed_amount(r: Receivable) -> float:
    return float(r.amount) if r.type == "due" else -float(r.amount)


def employee_balance(receivables: Iterable[Receivable], employee_id: int) -> float:
    total = 0.0
    for r in receivables:
        if r.employee_id == employee_id:
            total += signed_amount(r)
    return round_money(total)


def balances_by_employee(receivables: Iterable[Receivable]) -> Dict[int, float]:
    out: Dict[int, float] = {}
    for r in receivables:
        out[r.employee_id] = out.get(r.employee_id, 0.0) + signed_amount(r)
    return {k: round_money(v) for k, v in out.items()}

"""
notifications/messages.py

SMS texts telling employees about amounts put on them by a ledger entry.

- New entry: one message per positive due / commission posting, with the
  employee's running total (balance before the entry + the new amount).
- Edited entry: a message only when the due or commission amount, or who it
  is assigned to, changed.

Employees without a phone number are skipped. Building messages is pure;
dispatch() is the only function that talks to an SmsSender.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Iterable, List, Mapping, Optional, Tuple

from ...constants import SMS_TEMPLATE_EDIT_LEDGER, SMS_TEMPLATE_NEW_LEDGER
from ...database.repositories.employees_repo import Employee
from ...database.repositories.ledger_repo import LedgerEntry
from ...utils.helpers import fmt_money, round_money
from .sms import SmsResult, SmsSender

__all__ = [
    "Notification",
    "sms_segment_count",
    "render",
    "build_new_ledger_notifications",
    "build_edit_ledger_notifications",
    "dispatch",
]

_log = logging.getLogger(__name__)

AMOUNT_TYPE_DUE = "Due"
AMOUNT_TYPE_COMMISSION = "Commission"


@dataclass(frozen=True)
class Notification:
    employee_id: int
    employee_name: str
    phone: str
    amount_type: str
    new_amount: float
    message: str
    old_amount: Optional[float] = None
    total_due: Optional[float] = None

    @property
    def segments(self) -> int:
        return sms_segment_count(self.message)


def sms_segment_count(message: str) -> int:
    """Billable SMS parts: 70/67 chars for Unicode text, 160/153 for GSM text."""
    n = len(message)
    if any(ord(ch) > 127 for ch in message):
        return 1 if n <= 70 else math.ceil(n / 67)
    return 1 if n <= 160 else math.ceil(n / 153)


def render(template: str, **values) -> str:
    """Replace {placeholders} present in `values`; unknown ones stay as written."""
    out = template
    for key, value in values.items():
        out = out.replace("{" + key + "}", str(value))
    return out


def _recipient(employees: Mapping[int, Employee], employee_id: Optional[int]) -> Optional[Employee]:
    if employee_id is None:
        return None
    emp = employees.get(employee_id)
    if emp is None or not (emp.phone or "").strip():
        return None
    return emp


def build_new_ledger_notifications(
    entry: LedgerEntry,
    employees: Mapping[int, Employee],
    balances_before: Mapping[int, float],
    *,
    business_name: str = "",
    template: str = SMS_TEMPLATE_NEW_LEDGER,
) -> List[Notification]:
    out: List[Notification] = []
    postings = (
        (AMOUNT_TYPE_DUE, entry.amount_due, entry.due_assigned_to),
        (AMOUNT_TYPE_COMMISSION, entry.commission, entry.commission_assigned_to),
    )
    for amount_type, amount, employee_id in postings:
        if not amount or amount <= 0:
            continue
        emp = _recipient(employees, employee_id)
        if emp is None:
            continue
        total_due = round_money(balances_before.get(emp.employee_id, 0.0) + amount)
        message = render(
            template,
            business_name=business_name,
            employee_name=emp.name,
            date=entry.date,
            ledger_no=entry.ledger_id,
            amount_type=amount_type,
            new_amount=fmt_money(amount),
            total_due=fmt_money(total_due),
        )
        out.append(
            Notification(
                employee_id=int(emp.employee_id),
                employee_name=emp.name,
                phone=emp.phone.strip(),
                amount_type=amount_type,
                new_amount=amount,
                total_due=total_due,
                message=message,
            )
        )
    return out


def build_edit_ledger_notifications(
    old: LedgerEntry,
    new: LedgerEntry,
    employees: Mapping[int, Employee],
    *,
    business_name: str = "",
    template: str = SMS_TEMPLATE_EDIT_LEDGER,
) -> List[Notification]:
    out: List[Notification] = []
    changes = (
        (AMOUNT_TYPE_COMMISSION, old.commission, new.commission,
         old.commission_assigned_to, new.commission_assigned_to),
        (AMOUNT_TYPE_DUE, old.amount_due, new.amount_due,
         old.due_assigned_to, new.due_assigned_to),
    )
    for amount_type, old_amount, new_amount, old_emp, new_emp in changes:
        if round_money(old_amount) == round_money(new_amount) and old_emp == new_emp:
            continue
        emp = _recipient(employees, new_emp)
        if emp is None:
            continue
        message = render(
            template,
            employee_name=emp.name,
            ledger_no=new.ledger_id,
            amount_type=amount_type,
            old_amount=fmt_money(old_amount),
            new_amount=fmt_money(new_amount),
            business_name=business_name,
        )
        out.append(
            Notification(
                employee_id=int(emp.employee_id),
                employee_name=emp.name,
                phone=emp.phone.strip(),
                amount_type=amount_type,
                old_amount=old_amount,
                new_amount=new_amount,
                message=message,
            )
        )
    return out


def dispatch(
    sender: SmsSender,
    notifications: Iterable[Notification],
) -> List[Tuple[Notification, SmsResult]]:
    results = []
    for n in notifications:
        result = sender.send(n.phone, n.message)
        if result.success:
            _log.info("SMS sent to %s (%d part(s)): %s", n.employee_name, n.segments, result.message)
        else:
            _log.warning("SMS to %s failed: %s", n.employee_name, result.message)
        results.append((n, result))
    return results

from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Iterable, Optional

from ..transactions import immediate_tx
from ...utils.helpers import round_money, today_str
from ...utils.validators import is_strictly_positive_number


class DomainError(Exception):
    pass


ORIGIN_MANUAL = "manual"
ORIGIN_LEDGER_DUE = "ledger_due"
ORIGIN_LEDGER_COMMISSION = "ledger_commission"
ORIGIN_LEDGER_PAYMENT = "ledger_payment"

# Rows that regeneration owns; everything else survives a ledger edit.
DERIVED_ORIGINS = (ORIGIN_LEDGER_DUE, ORIGIN_LEDGER_COMMISSION)


@dataclass
class Receivable:
    receivable_id: int | None
    employee_id: int
    date: str
    type: str  # 'due' | 'payment'
    amount: float
    note: str = ""
    origin: str = ORIGIN_MANUAL
    ledger_id: int | None = None


_SELECT = (
    "SELECT receivable_id, employee_id, date, type, CAST(amount AS REAL) AS amount, "
    "note, origin, ledger_id FROM receivable_transactions"
)


class ReceivablesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- Queries ----------------------------------------------------------

    def list_for_employee(self, employee_id: int) -> list[Receivable]:
        rows = self.conn.execute(
            _SELECT + " WHERE employee_id=? ORDER BY DATE(date) DESC, receivable_id DESC",
            (employee_id,),
        ).fetchall()
        return [Receivable(**r) for r in rows]

    def list_for_ledger(self, ledger_id: int) -> list[Receivable]:
        rows = self.conn.execute(
            _SELECT + " WHERE ledger_id=? ORDER BY receivable_id",
            (ledger_id,),
        ).fetchall()
        return [Receivable(**r) for r in rows]

    def list_all(self) -> list[Receivable]:
        rows = self.conn.execute(
            _SELECT + " ORDER BY DATE(date) DESC, receivable_id DESC"
        ).fetchall()
        return [Receivable(**r) for r in rows]

    def get(self, receivable_id: int) -> Optional[Receivable]:
        r = self.conn.execute(
            _SELECT + " WHERE receivable_id=?", (receivable_id,)
        ).fetchone()
        return Receivable(**r) if r else None

    def balance(self, employee_id: int) -> float:
        """Set-based balance from v_employee_balance (0.0 for unknown employees)."""
        r = self.conn.execute(
            "SELECT balance FROM v_employee_balance WHERE employee_id=?",
            (employee_id,),
        ).fetchone()
        return round_money(float(r["balance"])) if r else 0.0

    def balances(self) -> dict[int, float]:
        rows = self.conn.execute(
            "SELECT employee_id, balance FROM v_employee_balance"
        ).fetchall()
        return {int(r["employee_id"]): round_money(float(r["balance"])) for r in rows}

    # ---- Ledger-derived postings (caller owns the transaction) ------------

    def delete_ledger_postings(self, ledger_id: int) -> int:
        cur = self.conn.execute(
            "DELETE FROM receivable_transactions WHERE ledger_id=? AND origin IN (?, ?)",
            (ledger_id, *DERIVED_ORIGINS),
        )
        return cur.rowcount

    def insert_postings(self, postings: Iterable[Receivable]) -> None:
        rows = [
            (p.ledger_id, p.origin, p.employee_id, p.date, p.type, round_money(p.amount), p.note)
            for p in postings
        ]
        if rows:
            self.conn.executemany(
                "INSERT INTO receivable_transactions(ledger_id, origin, employee_id, date, type, amount, note) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    # ---- Standalone commands ----------------------------------------------

    def add_manual(
        self,
        employee_id: int,
        type: str,
        amount: float,
        date: str | None = None,
        note: str = "",
    ) -> int:
        if type not in ("due", "payment"):
            raise DomainError("Receivable type must be 'due' or 'payment'.")
        if not is_strictly_positive_number(amount):
            raise DomainError("Amount must be greater than zero.")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO receivable_transactions(origin, employee_id, date, type, amount, note) "
                "VALUES ('manual', ?, ?, ?, ?, ?)",
                (employee_id, date or today_str(), type, round_money(amount), note or ""),
            )
            return int(cur.lastrowid)

    def delete_manual(self, receivable_id: int) -> None:
        r = self.get(receivable_id)
        if r is None:
            raise DomainError(f"Receivable {receivable_id} does not exist.")
        if r.origin != ORIGIN_MANUAL:
            raise DomainError(
                f"Receivable {receivable_id} belongs to ledger #{r.ledger_id}; "
                "edit or delete the ledger entry instead."
            )
        with immediate_tx(self.conn):
            self.conn.execute(
                "DELETE FROM receivable_transactions WHERE receivable_id=?", (receivable_id,)
            )

    def record_ledger_payment(
        self,
        ledger_id: int,
        kind: str,
        amount: float,
        date: str | None = None,
    ) -> int:
        """
        Record money collected against a ledger entry's due ('due') or
        commission ('commission') assignee. The ledger entry is left untouched.

        The payment may not exceed what is still outstanding: the entry's
        amount_due (or commission) minus earlier payments of the same kind.
        """
        columns = {
            "due": ("amount_due", "due_assigned_to"),
            "commission": ("commission", "commission_assigned_to"),
        }.get(kind)
        if columns is None:
            raise DomainError("Payment kind must be 'due' or 'commission'.")
        if not is_strictly_positive_number(amount):
            raise DomainError("Amount must be greater than zero.")
        amount = round_money(amount)
        owed_col, assignee_col = columns
        with immediate_tx(self.conn):
            row = self.conn.execute(
                f"SELECT CAST({owed_col} AS REAL) AS owed, {assignee_col} AS employee_id "
                "FROM ledger_entries WHERE ledger_id=?",
                (ledger_id,),
            ).fetchone()
            if row is None:
                raise DomainError(f"Ledger #{ledger_id} does not exist.")
            if row["employee_id"] is None:
                raise DomainError(f"Ledger #{ledger_id} has no {kind} assignee.")
            outstanding = round_money(float(row["owed"]) - self.paid_against(ledger_id, kind))
            if outstanding <= 0:
                raise DomainError(f"Ledger #{ledger_id} has no outstanding {kind}.")
            if amount > outstanding:
                raise DomainError(
                    f"Payment of {amount:.2f} exceeds the outstanding {kind} of {outstanding:.2f} "
                    f"on Ledger #{ledger_id}."
                )
            cur = self.conn.execute(
                "INSERT INTO receivable_transactions(ledger_id, origin, employee_id, date, type, amount, "
                "note, payment_kind) VALUES (?, 'ledger_payment', ?, ?, 'payment', ?, ?, ?)",
                (
                    ledger_id,
                    int(row["employee_id"]),
                    date or today_str(),
                    amount,
                    f"Payment for Ledger #{ledger_id} ({kind})",
                    kind,
                ),
            )
            return int(cur.lastrowid)

    def paid_against(self, ledger_id: int, kind: str) -> float:
        """Sum of payments already recorded against an entry's due or commission."""
        r = self.conn.execute(
            "SELECT COALESCE(SUM(CAST(amount AS REAL)), 0.0) AS paid "
            "FROM receivable_transactions "
            "WHERE ledger_id=? AND origin='ledger_payment' AND payment_kind=?",
            (ledger_id, kind),
        ).fetchone()
        return round_money(float(r["paid"]))

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import sqlite3


class DomainError(Exception):
    pass


@dataclass
class DailySummary:
    summary_id: int | None
    date: str
    market: str
    salesperson_id: int
    status: str = "pending"  # 'pending' | 'used'
    ledger_id: int | None = None


class DailySummariesRepo:
    """
    Draft sheets a salesperson fills in before the ledger entry exists.
    A ledger entry built from a summary marks it 'used'; deleting that
    entry puts the summary back to 'pending'.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def create(self, date: str, market: str, salesperson_id: int) -> int:
        cur = self.conn.execute(
            "INSERT INTO daily_summaries(date, market, salesperson_id) VALUES (?, ?, ?)",
            (date, market, salesperson_id),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def get(self, summary_id: int) -> Optional[DailySummary]:
        r = self.conn.execute(
            "SELECT summary_id, date, market, salesperson_id, status, ledger_id "
            "FROM daily_summaries WHERE summary_id=?",
            (summary_id,),
        ).fetchone()
        return DailySummary(**r) if r else None

    def list_pending(self) -> list[DailySummary]:
        rows = self.conn.execute(
            "SELECT summary_id, date, market, salesperson_id, status, ledger_id "
            "FROM daily_summaries WHERE status='pending' ORDER BY date DESC, summary_id DESC"
        ).fetchall()
        return [DailySummary(**r) for r in rows]

    # The two writes below run inside the ledger lifecycle transaction.

    def mark_used(self, summary_id: int, ledger_id: int) -> None:
        s = self.get(summary_id)
        if s is None:
            raise DomainError(f"Daily summary {summary_id} does not exist.")
        if s.status == "used" and s.ledger_id != ledger_id:
            raise DomainError(
                f"Daily summary {summary_id} is already used by ledger #{s.ledger_id}."
            )
        self.conn.execute(
            "UPDATE daily_summaries SET status='used', ledger_id=? WHERE summary_id=?",
            (ledger_id, summary_id),
        )

    def release_for_ledger(self, ledger_id: int) -> int:
        """Revert the summary linked to ledger_id to pending. Returns rows touched."""
        cur = self.conn.execute(
            "UPDATE daily_summaries SET status='pending', ledger_id=NULL WHERE ledger_id=?",
            (ledger_id,),
        )
        return cur.rowcount

"""
Stock journal: one signed row per stock change, in stocking units.

products.quantity is the running total; this table keeps every delta so the
counter can be checked (and rebuilt) as SUM(delta) per product.
"""

from __future__ import annotations

import sqlite3
from typing import List, Dict, Optional

from ...utils.helpers import round_qty

# Tolerance for float noise accumulated across many fractional sub-unit deltas
DRIFT_TOLERANCE = 1e-6


class StockJournalRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def record(
        self,
        product_id: int,
        delta: float,
        reason: str,
        *,
        ledger_id: Optional[int] = None,
    ) -> None:
        """Caller owns the transaction."""
        if delta == 0:
            return
        self.conn.execute(
            "INSERT INTO stock_movements(product_id, ledger_id, delta, reason) VALUES (?, ?, ?, ?)",
            (int(product_id), ledger_id, float(delta), reason),
        )

    def for_product(self, product_id: int) -> List[Dict]:
        rows = self.conn.execute(
            """
            SELECT movement_id, product_id, ledger_id, CAST(delta AS REAL) AS delta, reason, created_at
            FROM stock_movements
            WHERE product_id = ?
            ORDER BY movement_id
            """,
            (int(product_id),),
        ).fetchall()
        return [dict(r) for r in rows]

    def for_ledger(self, ledger_id: int) -> List[Dict]:
        rows = self.conn.execute(
            """
            SELECT movement_id, product_id, ledger_id, CAST(delta AS REAL) AS delta, reason, created_at
            FROM stock_movements
            WHERE ledger_id = ?
            ORDER BY movement_id
            """,
            (int(ledger_id),),
        ).fetchall()
        return [dict(r) for r in rows]

    def verify(self) -> List[Dict]:
        """
        Return products whose quantity disagrees with the sum of their
        movements. An empty list means stock and journal agree.
        """
        rows = self.conn.execute(
            "SELECT product_id, name, quantity, journal_quantity FROM v_stock_drift"
        ).fetchall()
        drifted = []
        for r in rows:
            diff = float(r["quantity"]) - float(r["journal_quantity"])
            if abs(diff) > DRIFT_TOLERANCE:
                d = dict(r)
                d["drift"] = round_qty(diff)
                drifted.append(d)
        return drifted

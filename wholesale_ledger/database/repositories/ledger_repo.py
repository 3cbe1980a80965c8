from __future__ import annotations
from dataclasses import dataclass, field
import json
import sqlite3
from typing import Iterable, Optional


class DomainError(Exception):
    pass


@dataclass
class LedgerItem:
    product_id: int
    product_name: str
    unit: str
    price_per_unit: float
    summary_quantity: float
    quantity_returned: float = 0.0
    # derived: summary_quantity - quantity_returned, and quantity_sold * price_per_unit
    quantity_sold: float = 0.0
    total_price: float = 0.0


@dataclass
class DamagedItem:
    product_id: int
    product_name: str
    unit: str
    price_per_unit: float  # purchase-price basis
    quantity: float
    total_price: float = 0.0


@dataclass
class RewardItem:
    reward_id: int
    reward_name: str
    unit: str
    price_per_unit: float
    quantity_sold: float
    total_price: float = 0.0
    main_product_id: int | None = None
    purchase_price_per_unit: float | None = None


@dataclass
class LedgerEntry:
    ledger_id: int | None
    date: str
    market: str
    salesperson_id: int | None
    items: list[LedgerItem] = field(default_factory=list)
    damaged_items: list[DamagedItem] = field(default_factory=list)
    reward_items: list[RewardItem] = field(default_factory=list)
    amount_paid: float = 0.0
    due_assigned_to: int | None = None
    commission: float = 0.0
    commission_assigned_to: int | None = None
    note: str | None = None
    modified_reward_ids: list[int] = field(default_factory=list)
    summary_id: int | None = None
    day: str = ""
    # derived figures, stored with the entry
    gross_sale: float = 0.0
    total_damaged: float = 0.0
    total_reward_value: float = 0.0
    total_sale: float = 0.0
    amount_due: float = 0.0
    # display only
    salesperson_name: str | None = None


_HEADER_SELECT = """
    SELECT l.ledger_id, l.date, l.day, l.market, l.salesperson_id,
           e.name AS salesperson_name,
           CAST(l.amount_paid AS REAL)        AS amount_paid,
           l.due_assigned_to,
           CAST(l.commission AS REAL)         AS commission,
           l.commission_assigned_to, l.note, l.modified_reward_ids,
           CAST(l.gross_sale AS REAL)         AS gross_sale,
           CAST(l.total_damaged AS REAL)      AS total_damaged,
           CAST(l.total_reward_value AS REAL) AS total_reward_value,
           CAST(l.total_sale AS REAL)         AS total_sale,
           CAST(l.amount_due AS REAL)         AS amount_due,
           ds.summary_id
    FROM ledger_entries l
    LEFT JOIN employees e        ON e.employee_id = l.salesperson_id
    LEFT JOIN daily_summaries ds ON ds.ledger_id = l.ledger_id
"""


class LedgerRepo:
    """
    Ledger entries and their three line tables.

    Writes here never open their own transaction: the lifecycle manager
    wraps header, lines, stock and receivables in a single one.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # IDs
    # ---------------------------------------------------------------------
    def next_id(self) -> int:
        """Bump and return the ledger counter. Ids are never reused."""
        self.conn.execute("UPDATE counters SET value = value + 1 WHERE name = 'ledger'")
        row = self.conn.execute("SELECT value FROM counters WHERE name = 'ledger'").fetchone()
        if row is None:
            raise DomainError("Ledger counter is missing; was the schema applied?")
        return int(row["value"])

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def exists(self, ledger_id: int) -> bool:
        r = self.conn.execute(
            "SELECT 1 FROM ledger_entries WHERE ledger_id=?", (ledger_id,)
        ).fetchone()
        return r is not None

    def get(self, ledger_id: int) -> Optional[LedgerEntry]:
        r = self.conn.execute(
            _HEADER_SELECT + " WHERE l.ledger_id = ?", (ledger_id,)
        ).fetchone()
        if r is None:
            return None
        entry = self._entry_from_row(r)
        self._load_lines(entry)
        return entry

    def list_entries(
        self,
        *,
        date_from: str | None = None,
        date_to: str | None = None,
        salesperson_id: int | None = None,
        market: str | None = None,
        with_lines: bool = False,
    ) -> list[LedgerEntry]:
        where = []
        params: list = []
        if date_from:
            where.append("DATE(l.date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(l.date) <= DATE(?)")
            params.append(date_to)
        if salesperson_id is not None:
            where.append("l.salesperson_id = ?")
            params.append(salesperson_id)
        if market:
            where.append("l.market LIKE ?")
            params.append(f"%{market.strip()}%")

        sql = _HEADER_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(l.date) DESC, l.ledger_id DESC"

        entries = [self._entry_from_row(r) for r in self.conn.execute(sql, params).fetchall()]
        if with_lines:
            for e in entries:
                self._load_lines(e)
        return entries

    def _entry_from_row(self, r: sqlite3.Row) -> LedgerEntry:
        return LedgerEntry(
            ledger_id=int(r["ledger_id"]),
            date=r["date"],
            day=r["day"] or "",
            market=r["market"],
            salesperson_id=r["salesperson_id"],
            salesperson_name=r["salesperson_name"],
            amount_paid=float(r["amount_paid"]),
            due_assigned_to=r["due_assigned_to"],
            commission=float(r["commission"]),
            commission_assigned_to=r["commission_assigned_to"],
            note=r["note"],
            modified_reward_ids=[int(x) for x in json.loads(r["modified_reward_ids"] or "[]")],
            summary_id=r["summary_id"],
            gross_sale=float(r["gross_sale"]),
            total_damaged=float(r["total_damaged"]),
            total_reward_value=float(r["total_reward_value"]),
            total_sale=float(r["total_sale"]),
            amount_due=float(r["amount_due"]),
        )

    def _load_lines(self, entry: LedgerEntry) -> None:
        lid = entry.ledger_id
        entry.items = [
            LedgerItem(**r)
            for r in self.conn.execute(
                """
                SELECT product_id, product_name, unit,
                       CAST(price_per_unit AS REAL) AS price_per_unit,
                       summary_quantity, quantity_returned, quantity_sold,
                       CAST(total_price AS REAL) AS total_price
                FROM ledger_items WHERE ledger_id=? ORDER BY item_id
                """,
                (lid,),
            ).fetchall()
        ]
        entry.damaged_items = [
            DamagedItem(**r)
            for r in self.conn.execute(
                """
                SELECT product_id, product_name, unit,
                       CAST(price_per_unit AS REAL) AS price_per_unit,
                       quantity,
                       CAST(total_price AS REAL) AS total_price
                FROM ledger_damaged_items WHERE ledger_id=? ORDER BY item_id
                """,
                (lid,),
            ).fetchall()
        ]
        entry.reward_items = [
            RewardItem(**r)
            for r in self.conn.execute(
                """
                SELECT reward_id, reward_name, unit,
                       CAST(price_per_unit AS REAL) AS price_per_unit,
                       quantity_sold,
                       CAST(total_price AS REAL) AS total_price,
                       main_product_id,
                       CAST(purchase_price_per_unit AS REAL) AS purchase_price_per_unit
                FROM ledger_reward_items WHERE ledger_id=? ORDER BY item_id
                """,
                (lid,),
            ).fetchall()
        ]

    # ---------------------------------------------------------------------
    # WRITE (caller owns the transaction)
    # ---------------------------------------------------------------------
    def insert(self, entry: LedgerEntry) -> None:
        if entry.ledger_id is None:
            raise DomainError("Ledger entry needs an id before it can be stored.")
        self.conn.execute(
            """
            INSERT INTO ledger_entries(
                ledger_id, date, day, market, salesperson_id, amount_paid,
                due_assigned_to, commission, commission_assigned_to, note,
                modified_reward_ids, gross_sale, total_damaged, total_reward_value,
                total_sale, amount_due)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (entry.ledger_id, *self._header_values(entry)),
        )
        self._insert_lines(entry)

    def replace(self, entry: LedgerEntry) -> None:
        """Full replacement of header and lines; the id is kept."""
        cur = self.conn.execute(
            """
            UPDATE ledger_entries
            SET date=?, day=?, market=?, salesperson_id=?, amount_paid=?,
                due_assigned_to=?, commission=?, commission_assigned_to=?, note=?,
                modified_reward_ids=?, gross_sale=?, total_damaged=?,
                total_reward_value=?, total_sale=?, amount_due=?,
                updated_at=CURRENT_TIMESTAMP
            WHERE ledger_id=?
            """,
            (*self._header_values(entry), entry.ledger_id),
        )
        if cur.rowcount == 0:
            raise DomainError(f"Ledger #{entry.ledger_id} does not exist.")
        for table in ("ledger_items", "ledger_damaged_items", "ledger_reward_items"):
            self.conn.execute(f"DELETE FROM {table} WHERE ledger_id=?", (entry.ledger_id,))
        self._insert_lines(entry)

    def delete(self, ledger_id: int) -> None:
        """Lines and receivables cascade through their foreign keys."""
        self.conn.execute("DELETE FROM ledger_entries WHERE ledger_id=?", (ledger_id,))

    @staticmethod
    def _header_values(entry: LedgerEntry) -> tuple:
        return (
            entry.date,
            entry.day,
            entry.market.strip(),
            entry.salesperson_id,
            entry.amount_paid,
            entry.due_assigned_to,
            entry.commission,
            entry.commission_assigned_to,
            entry.note,
            json.dumps(sorted({int(x) for x in entry.modified_reward_ids})),
            entry.gross_sale,
            entry.total_damaged,
            entry.total_reward_value,
            entry.total_sale,
            entry.amount_due,
        )

    def _insert_lines(self, entry: LedgerEntry) -> None:
        lid = entry.ledger_id
        self._executemany(
            """
            INSERT INTO ledger_items(ledger_id, product_id, product_name, unit, price_per_unit,
                                     summary_quantity, quantity_returned, quantity_sold, total_price)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                (lid, it.product_id, it.product_name, it.unit, it.price_per_unit,
                 it.summary_quantity, it.quantity_returned, it.quantity_sold, it.total_price)
                for it in entry.items
            ),
        )
        self._executemany(
            """
            INSERT INTO ledger_damaged_items(ledger_id, product_id, product_name, unit,
                                             price_per_unit, quantity, total_price)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                (lid, d.product_id, d.product_name, d.unit, d.price_per_unit,
                 d.quantity, d.total_price)
                for d in entry.damaged_items
            ),
        )
        self._executemany(
            """
            INSERT INTO ledger_reward_items(ledger_id, reward_id, reward_name, main_product_id, unit,
                                            price_per_unit, purchase_price_per_unit,
                                            quantity_sold, total_price)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                (lid, r.reward_id, r.reward_name, r.main_product_id, r.unit, r.price_per_unit,
                 r.purchase_price_per_unit, r.quantity_sold, r.total_price)
                for r in entry.reward_items
            ),
        )

    def _executemany(self, sql: str, rows: Iterable[tuple]) -> None:
        rows = list(rows)
        if rows:
            self.conn.executemany(sql, rows)

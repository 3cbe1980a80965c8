# wholesale_ledger/database/repositories/products_repo.py
from dataclasses import dataclass
from typing import Optional, Dict, List
import sqlite3

from ..transactions import immediate_tx
from ...utils.helpers import round_qty
from .stock_journal_repo import StockJournalRepo


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


@dataclass
class Product:
    product_id: int | None
    name: str
    stocking_unit: str
    company: str = ""
    purchase_price: float = 0.0
    selling_price: float = 0.0
    sub_unit: str | None = None
    conversion_factor: float = 1.0
    quantity: float = 0.0

    def units(self) -> list[str]:
        """Units a line item may use for this product, stocking unit first."""
        return [u for u in (self.stocking_unit, self.sub_unit) if u]


_COLUMNS = (
    "product_id, name, company, "
    "CAST(purchase_price AS REAL) AS purchase_price, "
    "CAST(selling_price AS REAL) AS selling_price, "
    "stocking_unit, sub_unit, "
    "CAST(conversion_factor AS REAL) AS conversion_factor, "
    "CAST(quantity AS REAL) AS quantity"
)


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.journal = StockJournalRepo(conn)

    # ---------------------------- Products ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products ORDER BY company, name"
        ).fetchall()
        return [Product(**r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return Product(**r) if r else None

    def catalog(self) -> Dict[int, Product]:
        """Snapshot of every product keyed by id (the stock engine works on this)."""
        return {int(p.product_id): p for p in self.list_products()}

    def create(self, product: Product) -> int:
        """
        Insert a product. Its opening quantity goes through the stock journal
        so that quantity == SUM(movements) holds from the start.
        """
        if product.sub_unit and not product.conversion_factor > 0:
            raise DomainError("A product with a sub-unit needs a conversion factor greater than zero.")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO products(name, company, purchase_price, selling_price, "
                "stocking_unit, sub_unit, conversion_factor, quantity) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    product.name,
                    product.company,
                    product.purchase_price,
                    product.selling_price,
                    product.stocking_unit,
                    product.sub_unit or None,
                    product.conversion_factor,
                    round_qty(product.quantity),
                ),
            )
            pid = int(cur.lastrowid)
            self.journal.record(pid, round_qty(product.quantity), "opening")
            return pid

    def update(self, product: Product) -> None:
        """Update descriptive fields and prices. Stock changes go through adjust_stock()."""
        if product.product_id is None:
            raise DomainError("Cannot update a product without an id.")
        if product.sub_unit and not product.conversion_factor > 0:
            raise DomainError("A product with a sub-unit needs a conversion factor greater than zero.")
        with immediate_tx(self.conn):
            current = self.get(product.product_id)
            if current is None:
                raise DomainError(f"Product {product.product_id} does not exist.")
            if self._units_changed(current, product) and self._product_is_referenced(product.product_id):
                raise DomainError(
                    f"{current.name} is used on ledger entries; its units and conversion "
                    "factor can no longer be changed."
                )
            self.conn.execute(
                "UPDATE products "
                "SET name=?, company=?, purchase_price=?, selling_price=?, "
                "    stocking_unit=?, sub_unit=?, conversion_factor=? "
                "WHERE product_id=?",
                (
                    product.name,
                    product.company,
                    product.purchase_price,
                    product.selling_price,
                    product.stocking_unit,
                    product.sub_unit or None,
                    product.conversion_factor,
                    product.product_id,
                ),
            )

    @staticmethod
    def _units_changed(current: Product, new: Product) -> bool:
        # a posted line is reverted with the catalog's units at revert time
        return (
            current.stocking_unit != new.stocking_unit
            or (current.sub_unit or None) != (new.sub_unit or None)
            or float(current.conversion_factor) != float(new.conversion_factor)
        )

    def _product_is_referenced(self, product_id: int) -> bool:
        """True when a stored ledger line (sold or damaged) points at the product."""
        checks = [
            "SELECT 1 FROM ledger_items         WHERE product_id=? LIMIT 1",
            "SELECT 1 FROM ledger_damaged_items WHERE product_id=? LIMIT 1",
        ]
        for sql in checks:
            if self.conn.execute(sql, (product_id,)).fetchone():
                return True
        return False

    def adjust_stock(self, product_id: int, delta: float) -> float:
        """Restock (+) or write off (-) outside the ledger. Returns the new quantity."""
        with immediate_tx(self.conn):
            p = self.get(product_id)
            if p is None:
                raise DomainError(f"Product {product_id} does not exist.")
            new_qty = round_qty(p.quantity + float(delta))
            self.conn.execute(
                "UPDATE products SET quantity=? WHERE product_id=?", (new_qty, product_id)
            )
            self.journal.record(product_id, round_qty(new_qty - p.quantity), "adjustment")
            return new_qty

    def write_quantities(self, quantities: Dict[int, float]) -> None:
        """
        Persist stock counters computed by the reconciliation engine.
        Caller owns the transaction and journals the deltas.
        """
        self.conn.executemany(
            "UPDATE products SET quantity=? WHERE product_id=?",
            [(round_qty(q), int(pid)) for pid, q in quantities.items()],
        )

    def delete(self, product_id: int) -> None:
        """
        Hard delete. Ledger lines keep their cached product_name and degrade to
        zero cost, so posted entries stay printable. Reward rules for the
        product and its stock journal go with it.
        """
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))

    def companies(self) -> List[str]:
        rows = self.conn.execute(
            "SELECT DISTINCT company FROM products WHERE company <> '' ORDER BY company"
        ).fetchall()
        return [r["company"] for r in rows]

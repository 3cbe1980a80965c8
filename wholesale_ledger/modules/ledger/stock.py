"""
ledger/stock.py

Stock reconciliation for ledger saves.

Sold lines take `quantity_sold` out of stock, damaged lines take `quantity`.
An edit first gives the OLD entry's lines back (sign +1) and then takes the
NEW entry's lines out (sign -1), both against a copy of the catalog, so the
caller persists the result once. Creation has no OLD; deletion has no NEW.

Pure: nothing here touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Dict, Iterable, Mapping, Optional

from ...database.repositories.ledger_repo import DamagedItem, LedgerEntry, LedgerItem
from ...database.repositories.products_repo import Product
from ...utils.helpers import round_qty
from .units import to_stocking_units

__all__ = [
    "REVERT",
    "COMMIT",
    "StockPlan",
    "line_deltas",
    "apply_delta",
    "reconcile",
]

_log = logging.getLogger(__name__)

REVERT = +1
COMMIT = -1


@dataclass
class StockPlan:
    """Outcome of reconcile(): the catalog after the save and what changed."""
    catalog: Dict[int, Product]
    # product_id -> signed change in stocking units (only products that moved)
    deltas: Dict[int, float] = field(default_factory=dict)

    def quantities(self) -> Dict[int, float]:
        return {pid: self.catalog[pid].quantity for pid in self.deltas}


def line_deltas(
    catalog: Mapping[int, Product],
    items: Iterable[LedgerItem] = (),
    damaged_items: Iterable[DamagedItem] = (),
    sign: int = COMMIT,
) -> Dict[int, float]:
    """Signed stocking-unit change per product for the given lines."""
    if sign not in (REVERT, COMMIT):
        raise ValueError("sign must be +1 (revert) or -1 (commit)")
    out: Dict[int, float] = {}
    lines = [(i.product_id, i.quantity_sold, i.unit) for i in items]
    lines += [(d.product_id, d.quantity, d.unit) for d in damaged_items]
    for product_id, qty, unit in lines:
        product = catalog.get(product_id)
        if product is None:
            _log.debug("stock: product %s not in catalog; line skipped", product_id)
            continue
        out[product_id] = out.get(product_id, 0.0) + sign * to_stocking_units(qty, unit, product)
    return out


def apply_delta(
    catalog: Mapping[int, Product],
    items: Iterable[LedgerItem] = (),
    damaged_items: Iterable[DamagedItem] = (),
    sign: int = COMMIT,
) -> Dict[int, Product]:
    """
    Return a new catalog with the lines applied. Products not touched are
    shared with the input; touched ones are replaced, never mutated.
    """
    new_catalog = dict(catalog)
    for product_id, delta in line_deltas(catalog, items, damaged_items, sign).items():
        p = new_catalog[product_id]
        new_catalog[product_id] = replace(p, quantity=round_qty(p.quantity + delta))
    return new_catalog


def reconcile(
    catalog: Mapping[int, Product],
    old: Optional[LedgerEntry],
    new: Optional[LedgerEntry],
) -> StockPlan:
    """
    Revert `old` then commit `new` against `catalog`.

    `old` must be the entry as it was stored, captured before anything was
    changed. Pass old=None for a create and new=None for a delete.
    """
    after = dict(catalog)
    if old is not None:
        after = apply_delta(after, old.items, old.damaged_items, REVERT)
    if new is not None:
        after = apply_delta(after, new.items, new.damaged_items, COMMIT)

    deltas: Dict[int, float] = {}
    for product_id, product in after.items():
        before = catalog.get(product_id)
        if before is None:
            continue
        d = round_qty(product.quantity - before.quantity)
        if d != 0:
            deltas[product_id] = d
    return StockPlan(catalog=after, deltas=deltas)

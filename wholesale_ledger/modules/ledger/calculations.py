"""
ledger/calculations.py

Pure financial derivation for ledger entries. Used both for live previews
while an entry is being filled in and for the figures stored on save, so a
preview always matches what gets persisted.

Do not open DB connections here. Catalog lookups are plain dicts
({product_id: Product}, {reward_id: Reward}); a missing id contributes zero.
Money is rounded to 2 decimals; formatting belongs in the UI.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Dict, Iterable, Mapping, Optional

from ...database.repositories.ledger_repo import (
    DamagedItem,
    LedgerEntry,
    LedgerItem,
    RewardItem,
)
from ...utils.helpers import round_money, round_qty
from .units import cost_per_unit

__all__ = [
    "LedgerTotals",
    "LedgerProfit",
    "normalize_item",
    "normalize_damaged",
    "normalize_reward",
    "derive_totals",
    "apply_totals",
    "item_profit",
    "reward_profit",
    "ledger_profit",
    "sales_by_company",
]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerTotals:
    gross_sale: float
    total_damaged: float
    total_reward_value: float
    total_sale: float
    amount_due: float


@dataclass(frozen=True)
class LedgerProfit:
    items: float
    rewards: float

    @property
    def total(self) -> float:
        return round_money(self.items + self.rewards)


# -----------------------------
# Line items
# -----------------------------

def normalize_item(item: LedgerItem) -> LedgerItem:
    """quantity_sold = summary - returned; total_price = quantity_sold * price_per_unit."""
    sold = round_qty(float(item.summary_quantity) - float(item.quantity_returned))
    return replace(
        item,
        quantity_sold=sold,
        total_price=round_money(sold * float(item.price_per_unit)),
    )


def normalize_damaged(item: DamagedItem) -> DamagedItem:
    return replace(item, total_price=round_money(float(item.quantity) * float(item.price_per_unit)))


def normalize_reward(item: RewardItem) -> RewardItem:
    return replace(item, total_price=round_money(float(item.quantity_sold) * float(item.price_per_unit)))


# -----------------------------
# Totals
# -----------------------------

def derive_totals(
    items: Iterable[LedgerItem],
    damaged_items: Iterable[DamagedItem] = (),
    reward_items: Iterable[RewardItem] = (),
    *,
    amount_paid: float = 0.0,
    commission: float = 0.0,
) -> LedgerTotals:
    """
    gross_sale    = sum of item totals
    total_sale    = gross_sale - total_damaged
    amount_due    = total_sale - amount_paid - commission (may be negative)

    Reward value is reported but never moves total_sale.
    """
    gross = round_money(sum(float(i.total_price) for i in items))
    damaged = round_money(sum(float(d.total_price) for d in damaged_items))
    rewards = round_money(sum(float(r.total_price) for r in reward_items))
    total_sale = round_money(gross - damaged)
    amount_due = round_money(total_sale - float(amount_paid or 0.0) - float(commission or 0.0))
    return LedgerTotals(
        gross_sale=gross,
        total_damaged=damaged,
        total_reward_value=rewards,
        total_sale=total_sale,
        amount_due=amount_due,
    )


def apply_totals(entry: LedgerEntry) -> LedgerEntry:
    """Return a copy of `entry` with normalized lines and fresh derived figures."""
    items = [normalize_item(i) for i in entry.items]
    damaged = [normalize_damaged(d) for d in entry.damaged_items]
    rewards = [normalize_reward(r) for r in entry.reward_items]
    totals = derive_totals(
        items,
        damaged,
        rewards,
        amount_paid=entry.amount_paid,
        commission=entry.commission,
    )
    return replace(
        entry,
        items=items,
        damaged_items=damaged,
        reward_items=rewards,
        amount_paid=round_money(entry.amount_paid or 0.0),
        commission=round_money(entry.commission or 0.0),
        gross_sale=totals.gross_sale,
        total_damaged=totals.total_damaged,
        total_reward_value=totals.total_reward_value,
        total_sale=totals.total_sale,
        amount_due=totals.amount_due,
    )


# -----------------------------
# Profit (reporting only)
# -----------------------------

def item_profit(item: LedgerItem, catalog: Mapping[int, object]) -> float:
    """total_price - quantity_sold * cost per unit; 0.0 when the product is gone."""
    product = catalog.get(item.product_id)
    if product is None:
        _log.debug("item_profit: product %s not in catalog; contributes 0", item.product_id)
        return 0.0
    cost = float(item.quantity_sold) * cost_per_unit(product, item.unit)
    return round_money(float(item.total_price) - cost)


def reward_profit(item: RewardItem, reward_catalog: Mapping[int, object]) -> float:
    """Cost basis is the line's purchase price override, else the reward catalog's."""
    basis: Optional[float] = item.purchase_price_per_unit
    if basis is None:
        reward = reward_catalog.get(item.reward_id)
        if reward is None:
            _log.debug("reward_profit: reward %s not in catalog; contributes 0", item.reward_id)
            return 0.0
        basis = float(reward.purchase_price)
    return round_money(float(item.total_price) - float(item.quantity_sold) * float(basis))


def ledger_profit(
    entry: LedgerEntry,
    catalog: Mapping[int, object],
    reward_catalog: Mapping[int, object] | None = None,
) -> LedgerProfit:
    items = round_money(sum(item_profit(i, catalog) for i in entry.items))
    rewards = round_money(sum(reward_profit(r, reward_catalog or {}) for r in entry.reward_items))
    return LedgerProfit(items=items, rewards=rewards)


def sales_by_company(
    entries: Iterable[LedgerEntry],
    catalog: Mapping[int, object],
) -> Dict[str, Dict[str, float]]:
    """
    Per-company sale figures across entries:
      {company: {"sale_with_profit": ..., "sale_without_profit": ...}}
    sale_without_profit is the cost of what was sold. Lines whose product
    no longer exists are skipped.
    """
    out: Dict[str, Dict[str, float]] = {}
    for entry in entries:
        for item in entry.items:
            product = catalog.get(item.product_id)
            if product is None:
                continue
            company = product.company or ""
            bucket = out.setdefault(company, {"sale_with_profit": 0.0, "sale_without_profit": 0.0})
            bucket["sale_with_profit"] += float(item.total_price)
            bucket["sale_without_profit"] += float(item.quantity_sold) * cost_per_unit(product, item.unit)
    for bucket in out.values():
        bucket["sale_with_profit"] = round_money(bucket["sale_with_profit"])
        bucket["sale_without_profit"] = round_money(bucket["sale_without_profit"])
    return out

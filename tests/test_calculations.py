from __future__ import annotations

import pytest

from wholesale_ledger.database.repositories import (
    LedgerEntry,
    LedgerItem,
    Product,
    Reward,
    RewardItem,
)
from wholesale_ledger.modules.ledger.calculations import (
    apply_totals,
    derive_totals,
    item_profit,
    ledger_profit,
    normalize_item,
    reward_profit,
    sales_by_company,
)

SOAP = Product(product_id=1, name="Soap", company="Acme", stocking_unit="Box", sub_unit="Piece",
               conversion_factor=12, purchase_price=12.0, quantity=10)
RICE = Product(product_id=2, name="Rice", company="Grain Co", stocking_unit="Bag",
               purchase_price=40.0, quantity=100)
CATALOG = {1: SOAP, 2: RICE}


def _item(pid, unit, price, summary, returned=0.0):
    return normalize_item(
        LedgerItem(product_id=pid, product_name="", unit=unit, price_per_unit=price,
                   summary_quantity=summary, quantity_returned=returned)
    )


def test_normalize_item_derives_sold_and_total():
    it = _item(1, "Box", 15, 5, returned=1.5)
    assert it.quantity_sold == pytest.approx(3.5)
    assert it.total_price == pytest.approx(52.5)


def test_mixed_units_gross_sale():
    items = [_item(1, "Box", 15, 2), _item(1, "Piece", 1.5, 6)]
    totals = derive_totals(items)
    assert totals.gross_sale == pytest.approx(39.0)
    assert totals.total_sale == pytest.approx(39.0)


def test_totals_identities_and_due():
    e = apply_totals(
        LedgerEntry(
            ledger_id=None, date="2025-01-06", market="Central Bazar", salesperson_id=1,
            items=[LedgerItem(2, "Rice", "Bag", 50, 10)],
            damaged_items=[],
            amount_paid=300, commission=20,
        )
    )
    assert e.gross_sale == pytest.approx(500)
    assert e.total_sale == pytest.approx(e.gross_sale - e.total_damaged)
    assert e.amount_due == pytest.approx(e.total_sale - e.amount_paid - e.commission)
    assert e.amount_due == pytest.approx(180)


def test_reward_value_does_not_change_total_sale():
    reward = RewardItem(reward_id=1, reward_name="Cap", unit="Piece", price_per_unit=5,
                        quantity_sold=4, total_price=20)
    totals = derive_totals([_item(2, "Bag", 50, 2)], [], [reward], amount_paid=0, commission=0)
    assert totals.total_reward_value == pytest.approx(20)
    assert totals.total_sale == pytest.approx(100)


def test_amount_due_may_be_negative():
    totals = derive_totals([_item(2, "Bag", 50, 2)], amount_paid=150, commission=0)
    assert totals.amount_due == pytest.approx(-50)


def test_item_profit_uses_sub_unit_cost():
    assert item_profit(_item(1, "Box", 15, 2), CATALOG) == pytest.approx(6.0)
    assert item_profit(_item(1, "Piece", 1.5, 6), CATALOG) == pytest.approx(3.0)


def test_item_profit_for_missing_product_is_zero():
    assert item_profit(_item(99, "Box", 15, 2), CATALOG) == 0.0


def test_reward_profit_prefers_line_override():
    catalog = {7: Reward(reward_id=7, name="Cap", unit="Piece", purchase_price=3.0, selling_price=5.0)}
    line = RewardItem(reward_id=7, reward_name="Cap", unit="Piece", price_per_unit=5,
                      quantity_sold=2, total_price=10, purchase_price_per_unit=4.0)
    assert reward_profit(line, catalog) == pytest.approx(2.0)
    line.purchase_price_per_unit = None
    assert reward_profit(line, catalog) == pytest.approx(4.0)
    assert reward_profit(line, {}) == 0.0


def test_ledger_profit_sums_items_and_rewards():
    e = LedgerEntry(
        ledger_id=1, date="2025-01-06", market="M", salesperson_id=1,
        items=[_item(1, "Box", 15, 2), _item(1, "Piece", 1.5, 6)],
        reward_items=[RewardItem(reward_id=7, reward_name="Cap", unit="Piece", price_per_unit=5,
                                 quantity_sold=1, total_price=5, purchase_price_per_unit=3.0)],
    )
    profit = ledger_profit(e, CATALOG, {})
    assert profit.items == pytest.approx(9.0)
    assert profit.rewards == pytest.approx(2.0)
    assert profit.total == pytest.approx(11.0)


def test_sales_by_company_skips_missing_products():
    e = LedgerEntry(
        ledger_id=1, date="2025-01-06", market="M", salesperson_id=1,
        items=[_item(1, "Box", 15, 2), _item(2, "Bag", 50, 1), _item(99, "Box", 10, 1)],
    )
    out = sales_by_company([e], CATALOG)
    assert set(out) == {"Acme", "Grain Co"}
    assert out["Acme"]["sale_with_profit"] == pytest.approx(30.0)
    assert out["Acme"]["sale_without_profit"] == pytest.approx(24.0)
    assert out["Grain Co"]["sale_without_profit"] == pytest.approx(40.0)

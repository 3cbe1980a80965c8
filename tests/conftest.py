# wholesale_ledger/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures), offscreen
# - Every test gets a fresh in-memory DB with the real schema
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - `ids` seeds a small catalog: three employees, two products,
#   one reward with a rule
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import sqlite3
from types import SimpleNamespace

import pytest

from wholesale_ledger.database import memory_connection
from wholesale_ledger.database.repositories import (
    DamagedItem,
    EmployeesRepo,
    LedgerEntry,
    LedgerItem,
    Product,
    ProductsRepo,
    Reward,
    RewardRule,
    RewardsRepo,
)


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Per-test database ----------
@pytest.fixture()
def conn():
    con = memory_connection()
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Seed the catalog and return the ids tests refer to."""
    emps = EmployeesRepo(conn)
    products = ProductsRepo(conn)
    rewards = RewardsRepo(conn)

    sales = emps.create("Rahim Uddin", phone="01711000001")
    collector = emps.create("Karim Ali", phone="01711000002")
    no_phone = emps.create("Salma Begum")

    soap = products.create(
        Product(
            product_id=None,
            name="Soap",
            company="Acme",
            purchase_price=12.0,
            selling_price=15.0,
            stocking_unit="Box",
            sub_unit="Piece",
            conversion_factor=12,
            quantity=10,
        )
    )
    rice = products.create(
        Product(
            product_id=None,
            name="Rice",
            company="Grain Co",
            purchase_price=40.0,
            selling_price=50.0,
            stocking_unit="Bag",
            quantity=100,
        )
    )

    cap = rewards.create(
        Reward(reward_id=None, name="Cap", unit="Piece", quantity=50,
               purchase_price=3.0, selling_price=5.0)
    )
    rewards.set_rule(
        RewardRule(rule_id=None, main_product_id=rice, main_product_quantity=5,
                   main_product_unit="Bag", reward_id=cap, reward_quantity=1)
    )

    return {
        "sales": sales,
        "collector": collector,
        "no_phone": no_phone,
        "soap": soap,
        "rice": rice,
        "cap": cap,
    }


# ---------- Builders ----------
def item(product_id: int, unit: str, price: float, summary: float, returned: float = 0.0,
         name: str = "") -> LedgerItem:
    return LedgerItem(
        product_id=product_id,
        product_name=name,
        unit=unit,
        price_per_unit=price,
        summary_quantity=summary,
        quantity_returned=returned,
    )


def damaged(product_id: int, unit: str, price: float, qty: float) -> DamagedItem:
    return DamagedItem(product_id=product_id, product_name="", unit=unit,
                       price_per_unit=price, quantity=qty)


def entry(salesperson_id: int, items: list, **kw) -> LedgerEntry:
    kw.setdefault("date", "2025-01-06")
    kw.setdefault("market", "Central Bazar")
    return LedgerEntry(ledger_id=None, salesperson_id=salesperson_id, items=items, **kw)


def stock(conn: sqlite3.Connection) -> dict:
    return {pid: p.quantity for pid, p in ProductsRepo(conn).catalog().items()}


@pytest.fixture()
def build():
    """Builders as a fixture so test modules need no conftest import."""
    return SimpleNamespace(item=item, damaged=damaged, entry=entry, stock=stock)

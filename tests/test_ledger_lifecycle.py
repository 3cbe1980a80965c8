from __future__ import annotations

from dataclasses import replace

import pytest

from wholesale_ledger.database.repositories import (
    DailySummariesRepo,
    LedgerRepo,
    ProductsRepo,
    ReceivablesRepo,
    StockJournalRepo,
)
from wholesale_ledger.modules.ledger import (
    LedgerLifecycle,
    LedgerNotFoundError,
    LedgerValidationError,
)
from wholesale_ledger.modules.ledger.calculations import item_profit


# --------------------------- helpers ---------------------------

def _postings(conn, ledger_id):
    return sorted(
        (r.origin, r.employee_id, r.type, r.amount)
        for r in ReceivablesRepo(conn).list_for_ledger(ledger_id)
    )


def _scenario_b(build, ids, **kw):
    kw.setdefault("amount_paid", 300)
    kw.setdefault("commission", 20)
    return build.entry(
        ids["sales"],
        [build.item(ids["rice"], "Bag", 50, 10)],
        damaged_items=[build.damaged(ids["rice"], "Bag", 50, 1)],
        due_assigned_to=ids["sales"],
        commission_assigned_to=ids["collector"],
        **kw,
    )


# --------------------------- create ---------------------------

def test_first_ledger_id_is_10000_and_ids_are_not_reused(conn, ids, build):
    lc = LedgerLifecycle(conn)
    first = lc.create(build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 1)]))
    assert first.ledger_id == 10000
    lc.delete(first.ledger_id)
    second = lc.create(build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 1)]))
    assert second.ledger_id == 10001


def test_mixed_unit_sale_updates_stock(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(
        build.entry(
            ids["sales"],
            [build.item(ids["soap"], "Box", 15, 2), build.item(ids["soap"], "Piece", 1.5, 6)],
        )
    )
    assert e.gross_sale == pytest.approx(39.0)
    assert build.stock(conn)[ids["soap"]] == pytest.approx(7.5)
    assert e.day == "Monday"
    assert [i.product_name for i in e.items] == ["Soap", "Soap"]
    assert StockJournalRepo(conn).verify() == []


def test_due_and_commission_postings(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(_scenario_b(build, ids))

    assert e.gross_sale == pytest.approx(500)
    assert e.total_damaged == pytest.approx(50)
    assert e.total_sale == pytest.approx(450)
    assert e.amount_due == pytest.approx(130)
    assert _postings(conn, e.ledger_id) == sorted([
        ("ledger_due", ids["sales"], "due", 130.0),
        ("ledger_commission", ids["collector"], "due", 20.0),
    ])
    assert build.stock(conn)[ids["rice"]] == pytest.approx(89)


def test_auto_rewards_are_reported_but_not_sold(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(_scenario_b(build, ids))
    assert [(r.reward_name, r.quantity_sold) for r in e.reward_items] == [("Cap", 2.0)]
    assert e.total_reward_value == pytest.approx(10)
    assert e.total_sale == pytest.approx(450)


# --------------------------- update ---------------------------

def test_paying_in_full_removes_due_posting(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(_scenario_b(build, ids))
    edited = lc.update(e.ledger_id, replace(e, amount_paid=450))

    assert edited.amount_due == pytest.approx(-20)
    assert _postings(conn, e.ledger_id) == [("ledger_commission", ids["collector"], "due", 20.0)]


def test_edit_matches_fresh_create(conn, ids, build):
    e1 = build.entry(ids["sales"], [build.item(ids["soap"], "Piece", 1.5, 30),
                                    build.item(ids["rice"], "Bag", 50, 4)])
    e2 = build.entry(ids["sales"], [build.item(ids["soap"], "Box", 15, 1)],
                     damaged_items=[build.damaged(ids["soap"], "Piece", 1, 3)])
    lc = LedgerLifecycle(conn)

    stored = lc.create(e1)
    lc.update(stored.ledger_id, e2)
    edited = build.stock(conn)

    # back to the starting stock, then E2 on its own
    lc.delete(stored.ledger_id)
    lc.create(e2)
    fresh = build.stock(conn)

    assert edited == pytest.approx(fresh)
    assert edited[ids["soap"]] == pytest.approx(10 - 1 - 0.25)
    assert edited[ids["rice"]] == pytest.approx(100)


def test_update_unknown_ledger_raises(conn, ids, build):
    lc = LedgerLifecycle(conn)
    with pytest.raises(LedgerNotFoundError):
        lc.update(424242, build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 1)]))


def test_recorded_payment_survives_edit(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(_scenario_b(build, ids))
    ReceivablesRepo(conn).record_ledger_payment(e.ledger_id, "due", 30)

    lc.update(e.ledger_id, replace(e, amount_paid=310))
    origins = sorted(r.origin for r in ReceivablesRepo(conn).list_for_ledger(e.ledger_id))
    assert origins == ["ledger_commission", "ledger_due", "ledger_payment"]
    assert ReceivablesRepo(conn).balance(ids["sales"]) == pytest.approx(120 - 30)


# --------------------------- delete ---------------------------

def test_delete_restores_stock_and_clears_receivables(conn, ids, build):
    before = build.stock(conn)
    lc = LedgerLifecycle(conn)
    e = lc.create(_scenario_b(build, ids))
    ReceivablesRepo(conn).record_ledger_payment(e.ledger_id, "commission", 5)

    removed = lc.delete(e.ledger_id)

    assert removed.ledger_id == e.ledger_id
    assert LedgerRepo(conn).get(e.ledger_id) is None
    assert ReceivablesRepo(conn).list_for_ledger(e.ledger_id) == []
    after = build.stock(conn)
    for pid in before:
        assert after[pid] == pytest.approx(before[pid])
    assert StockJournalRepo(conn).verify() == []


def test_delete_equals_edit_to_nothing_sold(conn, ids, build):
    before = build.stock(conn)
    lc = LedgerLifecycle(conn)
    a = lc.create(build.entry(ids["sales"], [build.item(ids["soap"], "Piece", 1.5, 9)]))
    # "empty" edit: the line stays but everything comes back
    lc.update(a.ledger_id, build.entry(ids["sales"], [build.item(ids["soap"], "Piece", 1.5, 9, returned=9)]))
    after_edit = build.stock(conn)
    lc.delete(a.ledger_id)
    after_delete = build.stock(conn)
    for pid in before:
        assert after_edit[pid] == pytest.approx(before[pid])
        assert after_delete[pid] == pytest.approx(before[pid])


def test_deleted_product_keeps_cached_name_and_zero_profit(conn, ids, build):
    lc = LedgerLifecycle(conn)
    e = lc.create(build.entry(ids["sales"], [build.item(ids["soap"], "Box", 15, 2)]))
    products = ProductsRepo(conn)
    products.delete(ids["soap"])

    stored = lc.get(e.ledger_id)
    assert stored.items[0].product_name == "Soap"
    assert item_profit(stored.items[0], products.catalog()) == 0.0

    # deleting the entry later skips the missing product
    lc.delete(e.ledger_id)
    assert StockJournalRepo(conn).verify() == []


# --------------------------- validation / atomicity ---------------------------

@pytest.mark.parametrize(
    "changes, fragment",
    [
        ({"market": "  "}, "Market"),
        ({"salesperson_id": None}, "Salesperson"),
        ({"items": []}, "at least one product"),
        ({"amount_paid": -1}, "Amount paid"),
        ({"date": "06/01/2025"}, "Date"),
    ],
)
def test_invalid_entries_write_nothing(conn, ids, build, changes, fragment):
    before = build.stock(conn)
    e = replace(build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 2)]), **changes)
    with pytest.raises(LedgerValidationError) as ei:
        LedgerLifecycle(conn).create(e)
    assert fragment in str(ei.value)
    assert LedgerRepo(conn).list_entries() == []
    assert build.stock(conn) == before


def test_returned_more_than_summary_is_rejected(conn, ids, build):
    e = build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 2, returned=3)])
    with pytest.raises(LedgerValidationError):
        LedgerLifecycle(conn).create(e)


def test_failure_mid_save_rolls_everything_back(conn, ids, build, monkeypatch):
    before = build.stock(conn)
    lc = LedgerLifecycle(conn)

    def boom(postings):
        raise RuntimeError("disk full")

    monkeypatch.setattr(lc.receivables, "insert_postings", boom)
    with pytest.raises(RuntimeError):
        lc.create(_scenario_b(build, ids))

    assert build.stock(conn) == before
    assert LedgerRepo(conn).list_entries() == []
    assert ReceivablesRepo(conn).list_all() == []
    assert StockJournalRepo(conn).verify() == []

    monkeypatch.undo()
    assert lc.create(_scenario_b(build, ids)).ledger_id == 10000


# --------------------------- daily summaries ---------------------------

def test_daily_summary_is_used_then_released(conn, ids, build):
    summaries = DailySummariesRepo(conn)
    sid = summaries.create("2025-01-06", "Central Bazar", ids["sales"])
    lc = LedgerLifecycle(conn)

    e = lc.create(build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 1)], summary_id=sid))
    s = summaries.get(sid)
    assert (s.status, s.ledger_id) == ("used", e.ledger_id)
    assert lc.get(e.ledger_id).summary_id == sid

    lc.delete(e.ledger_id)
    s = summaries.get(sid)
    assert (s.status, s.ledger_id) == ("pending", None)

from __future__ import annotations

import sqlite3

import pytest

from wholesale_ledger.database import immediate_tx
from wholesale_ledger.database.repositories import (
    LedgerRepo,
    Receivable,
    ReceivablesDomainError,
    ReceivablesRepo,
)
from wholesale_ledger.modules.ledger import LedgerLifecycle
from wholesale_ledger.modules.ledger.receivables import derive_postings, regenerate
from wholesale_ledger.modules.receivables import balances_by_employee, employee_balance


def _snapshot(repo, ledger_id):
    return sorted((r.origin, r.employee_id, r.type, r.amount, r.note)
                  for r in repo.list_for_ledger(ledger_id))


def _stored(conn, ids, build, **kw):
    kw.setdefault("amount_paid", 100)
    kw.setdefault("commission", 15)
    return LedgerLifecycle(conn).create(
        build.entry(ids["sales"], [build.item(ids["rice"], "Bag", 50, 4)],
                    due_assigned_to=ids["sales"], commission_assigned_to=ids["collector"], **kw)
    )


def test_regenerate_is_idempotent(conn, ids, build):
    e = _stored(conn, ids, build)
    repo = ReceivablesRepo(conn)
    first = _snapshot(repo, e.ledger_id)
    with immediate_tx(conn):
        regenerate(repo, e)
        regenerate(repo, e)
    assert _snapshot(repo, e.ledger_id) == first
    assert first == sorted([
        ("ledger_commission", ids["collector"], "due", 15.0, f"Commission from Ledger #{e.ledger_id}"),
        ("ledger_due", ids["sales"], "due", 85.0, f"Due from Ledger #{e.ledger_id}"),
    ])


def test_one_posting_per_kind_is_enforced_by_schema(conn, ids, build):
    e = _stored(conn, ids, build)
    repo = ReceivablesRepo(conn)
    dup = Receivable(receivable_id=None, employee_id=ids["sales"], date=e.date, type="due",
                     amount=1.0, origin="ledger_due", ledger_id=e.ledger_id)
    with pytest.raises(sqlite3.IntegrityError):
        with immediate_tx(conn):
            repo.insert_postings([dup])


def test_non_positive_amounts_post_nothing(conn, ids, build):
    e = _stored(conn, ids, build, amount_paid=200, commission=0)
    assert e.amount_due == 0
    assert derive_postings(e) == []
    assert ReceivablesRepo(conn).list_for_ledger(e.ledger_id) == []


def test_missing_assignee_skips_posting(conn, ids, build):
    e = _stored(conn, ids, build)
    e.due_assigned_to = None
    assert [p.origin for p in derive_postings(e)] == ["ledger_commission"]


def test_manual_rows(conn, ids):
    repo = ReceivablesRepo(conn)
    rid = repo.add_manual(ids["collector"], "due", 40, "2025-01-02", "Advance")
    repo.add_manual(ids["collector"], "payment", 15, "2025-01-03")
    assert repo.balance(ids["collector"]) == pytest.approx(25)

    repo.delete_manual(rid)
    assert repo.balance(ids["collector"]) == pytest.approx(-15)

    with pytest.raises(ReceivablesDomainError):
        repo.add_manual(ids["collector"], "due", 0)
    with pytest.raises(ReceivablesDomainError):
        repo.add_manual(ids["collector"], "loan", 10)


def test_ledger_rows_cannot_be_deleted_by_hand(conn, ids, build):
    e = _stored(conn, ids, build)
    repo = ReceivablesRepo(conn)
    posting = repo.list_for_ledger(e.ledger_id)[0]
    with pytest.raises(ReceivablesDomainError):
        repo.delete_manual(posting.receivable_id)


def test_ledger_payment_goes_to_assignee(conn, ids, build):
    e = _stored(conn, ids, build)
    repo = ReceivablesRepo(conn)
    rid = repo.record_ledger_payment(e.ledger_id, "commission", 10, "2025-01-07")
    row = repo.get(rid)
    assert (row.employee_id, row.type, row.origin, row.amount) == (ids["collector"], "payment", "ledger_payment", 10.0)
    assert repo.balance(ids["collector"]) == pytest.approx(5)
    # the entry itself is not patched
    assert LedgerRepo(conn).get(e.ledger_id).amount_due == pytest.approx(85)

    with pytest.raises(ReceivablesDomainError):
        repo.record_ledger_payment(e.ledger_id, "salary", 10)
    with pytest.raises(ReceivablesDomainError):
        repo.record_ledger_payment(999, "due", 10)


def test_fold_matches_view(conn, ids, build):
    _stored(conn, ids, build)
    _stored(conn, ids, build, amount_paid=50, commission=5)
    repo = ReceivablesRepo(conn)
    repo.add_manual(ids["sales"], "payment", 33.3)
    repo.add_manual(ids["no_phone"], "due", 12.5)

    rows = repo.list_all()
    folded = balances_by_employee(rows)
    view = repo.balances()
    for employee_id, balance in view.items():
        assert folded.get(employee_id, 0.0) == pytest.approx(balance)
        assert employee_balance(rows, employee_id) == pytest.approx(repo.balance(employee_id))
    assert view[ids["sales"]] == pytest.approx(85 + 145 - 33.3)


def test_ledger_payment_is_capped_at_outstanding(conn, ids, build):
    e = _stored(conn, ids, build)
    repo = ReceivablesRepo(conn)
    repo.record_ledger_payment(e.ledger_id, "due", 60)
    assert repo.paid_against(e.ledger_id, "due") == pytest.approx(60)
    assert repo.paid_against(e.ledger_id, "commission") == 0.0

    with pytest.raises(ReceivablesDomainError):
        repo.record_ledger_payment(e.ledger_id, "due", 25.01)
    repo.record_ledger_payment(e.ledger_id, "due", 25)
    with pytest.raises(ReceivablesDomainError):
        repo.record_ledger_payment(e.ledger_id, "due", 0.01)

    # commission is tracked separately from the due
    repo.record_ledger_payment(e.ledger_id, "commission", 15)
    assert repo.balance(ids["sales"]) == pytest.approx(0)
    assert repo.balance(ids["collector"]) == pytest.approx(0)


def test_no_payment_against_settled_entry(conn, ids, build):
    e = _stored(conn, ids, build, amount_paid=200, commission=0)
    assert e.amount_due == 0
    repo = ReceivablesRepo(conn)
    with pytest.raises(ReceivablesDomainError):
        repo.record_ledger_payment(e.ledger_id, "due", 5000)
    assert repo.list_for_ledger(e.ledger_id) == []
    assert repo.balance(ids["sales"]) == 0.0

from __future__ import annotations

import io
import json
from dataclasses import replace
from urllib.error import URLError

import pytest

from wholesale_ledger.database.repositories import Employee, LedgerEntry
from wholesale_ledger.modules.notifications import sms as sms_module
from wholesale_ledger.modules.notifications import (
    BulkSmsClient,
    SmsResult,
    build_edit_ledger_notifications,
    build_new_ledger_notifications,
    dispatch,
    sms_segment_count,
)

EMPLOYEES = {
    1: Employee(employee_id=1, name="Rahim Uddin", phone="01711000001"),
    2: Employee(employee_id=2, name="Karim Ali", phone="01711000002"),
    3: Employee(employee_id=3, name="Salma Begum", phone=None),
}


def _entry(**kw) -> LedgerEntry:
    base = dict(ledger_id=10004, date="2025-01-06", market="Central Bazar", salesperson_id=1,
                amount_due=130.0, due_assigned_to=1, commission=20.0, commission_assigned_to=2)
    base.update(kw)
    return LedgerEntry(**base)


# --------------------------- segment counting ---------------------------

def test_segment_count_gsm_and_unicode():
    assert sms_segment_count("a" * 160) == 1
    assert sms_segment_count("a" * 161) == 2
    assert sms_segment_count("অ" * 70) == 1
    assert sms_segment_count("অ" * 71) == 2
    assert sms_segment_count("অ" * 135) == 3


# --------------------------- message building ---------------------------

def test_new_ledger_messages_carry_running_total():
    out = build_new_ledger_notifications(_entry(), EMPLOYEES, {1: 70.0}, business_name="Acme Traders")
    assert [(n.employee_id, n.amount_type) for n in out] == [(1, "Due"), (2, "Commission")]
    due = out[0]
    assert due.total_due == pytest.approx(200.0)
    assert "Ledger #10004" in due.message
    assert "200.00" in due.message and "130.00" in due.message
    assert due.message.startswith("Acme Traders")


def test_new_ledger_skips_employees_without_phone_and_zero_amounts():
    e = _entry(due_assigned_to=3, commission=0)
    assert build_new_ledger_notifications(e, EMPLOYEES, {}) == []


def test_edit_messages_only_for_changes():
    old = _entry()
    assert build_edit_ledger_notifications(old, replace(old, note="x"), EMPLOYEES) == []

    out = build_edit_ledger_notifications(old, replace(old, amount_due=100.0), EMPLOYEES,
                                          business_name="Acme Traders")
    assert len(out) == 1
    n = out[0]
    assert (n.employee_id, n.amount_type, n.old_amount, n.new_amount) == (1, "Due", 130.0, 100.0)
    assert "from 130.00 to 100.00" in n.message


def test_edit_reassigned_commission_notifies_new_assignee():
    old = _entry()
    out = build_edit_ledger_notifications(old, replace(old, commission_assigned_to=1), EMPLOYEES)
    assert [(n.employee_id, n.amount_type) for n in out] == [(1, "Commission")]


# --------------------------- HTTP client ---------------------------

class _FakeResponse(io.BytesIO):
    status = 200

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def _fake_urlopen(body: str, seen: list):
    def _open(req, timeout=None):
        seen.append(req.full_url)
        return _FakeResponse(body.encode("utf-8"))
    return _open


def test_json_202_is_success(monkeypatch):
    seen = []
    monkeypatch.setattr(sms_module, "urlopen", _fake_urlopen(
        json.dumps({"response_code": 202, "success_message": "SMS Submitted Successfully"}), seen))
    result = BulkSmsClient("key123", "8809601").send("01711000001", "Hello there")
    assert result == SmsResult(True, "SMS Submitted Successfully")
    assert "api_key=key123" in seen[0]
    assert "senderid=8809601" in seen[0]
    assert "number=01711000001" in seen[0]
    assert "message=Hello+there" in seen[0]


def test_json_error_code_is_failure(monkeypatch):
    monkeypatch.setattr(sms_module, "urlopen", _fake_urlopen(
        json.dumps({"response_code": 1007, "error_message": "Balance Insufficient"}), []))
    result = BulkSmsClient("k", "s").send("017", "hi")
    assert result == SmsResult(False, "Balance Insufficient")


def test_pipe_text_fallback(monkeypatch):
    monkeypatch.setattr(sms_module, "urlopen", _fake_urlopen("1000|Sent Successfully", []))
    assert BulkSmsClient("k", "s").send("017", "hi") == SmsResult(True, "Sent Successfully")

    monkeypatch.setattr(sms_module, "urlopen", _fake_urlopen("1002|Sender Id Invalid", []))
    assert BulkSmsClient("k", "s").send("017", "hi") == SmsResult(False, "Sender Id Invalid")


def test_network_error_never_raises(monkeypatch):
    def _down(req, timeout=None):
        raise URLError("no route to host")

    monkeypatch.setattr(sms_module, "urlopen", _down)
    result = BulkSmsClient("k", "s").send("017", "hi")
    assert result.success is False
    assert "no route" in result.message


def test_missing_credentials_short_circuit():
    assert BulkSmsClient("", "s").send("017", "hi").success is False


def test_dispatch_collects_results():
    class Sender:
        def __init__(self):
            self.sent = []

        def send(self, phone, message):
            self.sent.append(phone)
            return SmsResult(phone.endswith("1"), "ok" if phone.endswith("1") else "failed")

    sender = Sender()
    out = build_new_ledger_notifications(_entry(), EMPLOYEES, {})
    results = dispatch(sender, out)
    assert sender.sent == ["01711000001", "01711000002"]
    assert [r.success for _, r in results] == [True, False]

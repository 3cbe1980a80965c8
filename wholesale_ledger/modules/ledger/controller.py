from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from ...database.repositories.daily_summaries_repo import DomainError as SummariesDomainError
from ...database.repositories.employees_repo import EmployeesRepo
from ...database.repositories.ledger_repo import DomainError, LedgerEntry
from ...database.repositories.receivables_repo import DomainError as ReceivablesDomainError
from ..notifications.messages import (
    Notification,
    build_edit_ledger_notifications,
    build_new_ledger_notifications,
    dispatch,
)
from ..notifications.sms import BulkSmsClient, SmsResult, SmsSender
from .lifecycle import LedgerLifecycle
from .model import LedgerItemsModel, LedgerTableModel

_log = logging.getLogger(__name__)


class LedgerController(QObject):
    """
    Ledger screen controller (no widgets of its own; views bind to the models).

    Key behavior:
      - save()/delete() go through LedgerLifecycle, one transaction each.
      - Domain and constraint errors are reported through `failed` and never raised.
      - After a successful commit the list model is reloaded, `saved`/`deleted`
        fire, and SMS notifications are dispatched (when a sender is configured).
    """

    saved = Signal(int)
    deleted = Signal(int)
    failed = Signal(str)

    def __init__(
        self,
        conn: sqlite3.Connection,
        sms_sender: Optional[SmsSender] = None,
        *,
        business_name: Optional[str] = None,
        sms_enabled: Optional[bool] = None,
    ):
        super().__init__()
        self.conn = conn
        self.lifecycle = LedgerLifecycle(conn)
        self.employees = EmployeesRepo(conn)
        self.model = LedgerTableModel([])
        self.items_model = LedgerItemsModel([])
        self._filters: dict = {}

        if sms_enabled is None or business_name is None or sms_sender is None:
            from ... import config
            if sms_enabled is None:
                sms_enabled = config.SMS_ENABLED
            if business_name is None:
                business_name = config.BUSINESS_NAME
            if sms_sender is None and config.SMS_API_KEY and config.SMS_SENDER_ID:
                sms_sender = BulkSmsClient(config.SMS_API_KEY, config.SMS_SENDER_ID)
        self.sms_sender = sms_sender
        self.sms_enabled = bool(sms_enabled)
        self.business_name = business_name or ""
        self.last_notifications: List[Tuple[Notification, SmsResult]] = []

        self.reload()

    # ------------------------------------------------------------------ #
    # Model
    # ------------------------------------------------------------------ #

    def reload(self, **filters) -> None:
        """Reload the list; filters: date_from, date_to, salesperson_id, market."""
        if filters:
            self._filters = {k: v for k, v in filters.items() if v not in (None, "")}
        self.model.replace(self.lifecycle.ledger.list_entries(**self._filters))

    def select(self, row: int) -> Optional[LedgerEntry]:
        if row < 0 or row >= self.model.rowCount():
            self.items_model.replace([])
            return None
        entry = self.lifecycle.ledger.get(self.model.at(row).ledger_id)
        self.items_model.replace(entry.items if entry else [])
        return entry

    def preview(self, entry: LedgerEntry) -> LedgerEntry:
        return self.lifecycle.preview(self.lifecycle.refresh_rewards(entry))

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def save(self, entry: LedgerEntry, ledger_id: Optional[int] = None) -> Optional[LedgerEntry]:
        """Create (ledger_id None) or replace an entry. Returns the stored entry."""
        try:
            if ledger_id is None:
                balances_before = self.lifecycle.receivables.balances()
                stored = self.lifecycle.create(entry)
                notifications = build_new_ledger_notifications(
                    stored,
                    self._employee_map(),
                    balances_before,
                    business_name=self.business_name,
                )
            else:
                old = self.lifecycle.get(ledger_id)
                stored = self.lifecycle.update(ledger_id, entry)
                notifications = build_edit_ledger_notifications(
                    old,
                    stored,
                    self._employee_map(),
                    business_name=self.business_name,
                )
        except (DomainError, SummariesDomainError, sqlite3.IntegrityError) as e:
            _log.info("Ledger save rejected: %s", e)
            self.failed.emit(str(e))
            return None

        self.reload()
        self.saved.emit(int(stored.ledger_id))
        self._notify(notifications)
        return stored

    def delete(self, ledger_id: int) -> bool:
        try:
            self.lifecycle.delete(ledger_id)
        except (DomainError, sqlite3.IntegrityError) as e:
            self.failed.emit(str(e))
            return False
        self.reload()
        self.deleted.emit(int(ledger_id))
        return True

    def record_payment(self, ledger_id: int, kind: str, amount: float, date: Optional[str] = None) -> Optional[int]:
        """Collect money against an entry's due or commission assignee."""
        try:
            rid = self.lifecycle.receivables.record_ledger_payment(ledger_id, kind, amount, date)
        except ReceivablesDomainError as e:
            self.failed.emit(str(e))
            return None
        return rid

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _employee_map(self):
        return {int(e.employee_id): e for e in self.employees.list_employees()}

    def _notify(self, notifications: List[Notification]) -> None:
        self.last_notifications = []
        if not notifications or not self.sms_enabled or self.sms_sender is None:
            return
        self.last_notifications = dispatch(self.sms_sender, notifications)

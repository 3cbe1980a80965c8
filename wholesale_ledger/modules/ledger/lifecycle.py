"""
modules/ledger/lifecycle.py

Purpose
-------
Create, edit and delete ledger entries while keeping product stock and
employee receivables in step with them.

Public interface
----------------
- LedgerLifecycle.preview(entry) -> LedgerEntry        (pure, nothing stored)
- LedgerLifecycle.refresh_rewards(entry) -> LedgerEntry (reads reward rules)
- LedgerLifecycle.create(entry) -> LedgerEntry
- LedgerLifecycle.update(ledger_id, entry) -> LedgerEntry
- LedgerLifecycle.delete(ledger_id) -> LedgerEntry     (the entry as it was)

Every mutation runs in one IMMEDIATE transaction:
  load catalog -> revert OLD lines -> commit NEW lines -> write stock + journal
  -> write entry -> regenerate receivables -> link/unlink the daily summary.
Any exception rolls the whole thing back. Validation happens before the
transaction starts.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
import logging
import sqlite3
from typing import List, Optional

from ...database.repositories.daily_summaries_repo import DailySummariesRepo
from ...database.repositories.employees_repo import EmployeesRepo
from ...database.repositories.ledger_repo import DomainError, LedgerEntry, LedgerRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.receivables_repo import ReceivablesRepo
from ...database.repositories.rewards_repo import RewardsRepo
from ...database.transactions import immediate_tx
from ...utils.helpers import weekday_name
from ...utils.loggers import log_event
from ...utils.validators import is_non_negative_number, non_empty
from .calculations import apply_totals
from .receivables import regenerate
from .rewards import derive_auto_rewards, reconcile_reward_items
from .stock import StockPlan, reconcile


class LedgerValidationError(DomainError):
    """The entry cannot be saved as given. Nothing was written."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class LedgerNotFoundError(DomainError):
    def __init__(self, ledger_id: int):
        self.ledger_id = ledger_id
        super().__init__(f"Ledger #{ledger_id} does not exist.")


class LedgerLifecycle:
    def __init__(self, conn: sqlite3.Connection, logger: Optional[logging.Logger] = None) -> None:
        self.conn = conn
        self.ledger = LedgerRepo(conn)
        self.products = ProductsRepo(conn)
        self.rewards = RewardsRepo(conn)
        self.employees = EmployeesRepo(conn)
        self.receivables = ReceivablesRepo(conn)
        self.summaries = DailySummariesRepo(conn)
        self._log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Read / preview
    # ------------------------------------------------------------------
    def get(self, ledger_id: int) -> LedgerEntry:
        entry = self.ledger.get(ledger_id)
        if entry is None:
            raise LedgerNotFoundError(ledger_id)
        return entry

    def preview(self, entry: LedgerEntry) -> LedgerEntry:
        return apply_totals(entry)

    def refresh_rewards(self, entry: LedgerEntry) -> LedgerEntry:
        """Re-derive automatic rewards, keeping custom and hand-edited ones."""
        automatic = derive_auto_rewards(
            entry.items, self.rewards.rules_by_product(), self.rewards.catalog()
        )
        merged = reconcile_reward_items(entry.reward_items, automatic, entry.modified_reward_ids)
        return replace(entry, reward_items=merged)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self, entry: LedgerEntry) -> None:
        problems: List[str] = []
        if not non_empty(entry.market):
            problems.append("Market is required.")
        if entry.salesperson_id is None:
            problems.append("Salesperson is required.")
        elif not self.employees.exists(entry.salesperson_id):
            problems.append(f"Salesperson {entry.salesperson_id} does not exist.")
        if not entry.date:
            problems.append("Date is required.")
        else:
            try:
                date.fromisoformat(entry.date)
            except ValueError:
                problems.append(f"Date {entry.date!r} is not a valid YYYY-MM-DD date.")
        if not entry.items:
            problems.append("Add at least one product to the ledger.")

        for it in entry.items:
            label = it.product_name or f"product {it.product_id}"
            if it.price_per_unit < 0 or it.summary_quantity < 0 or it.quantity_returned < 0:
                problems.append(f"{label}: quantities and prices cannot be negative.")
            elif it.quantity_returned > it.summary_quantity:
                problems.append(f"{label}: returned quantity cannot exceed summary quantity.")
        for d in entry.damaged_items:
            if d.price_per_unit < 0 or d.quantity < 0:
                label = d.product_name or f"product {d.product_id}"
                problems.append(f"{label} (damaged): quantity and price cannot be negative.")
        for r in entry.reward_items:
            if r.price_per_unit < 0 or r.quantity_sold < 0:
                problems.append(f"{r.reward_name or r.reward_id} (reward): quantity and price cannot be negative.")
        if not is_non_negative_number(entry.amount_paid or 0):
            problems.append("Amount paid cannot be negative.")
        if not is_non_negative_number(entry.commission or 0):
            problems.append("Commission cannot be negative.")

        if problems:
            raise LedgerValidationError(problems)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, entry: LedgerEntry, *, auto_rewards: bool = True) -> LedgerEntry:
        self.validate(entry)
        prepared = self._prepare(entry, auto_rewards)

        with immediate_tx(self.conn):
            ledger_id = self.ledger.next_id()
            prepared = replace(prepared, ledger_id=ledger_id)
            log_event(self._log, "ledger.create", "start", "Creating ledger entry",
                      {"ledger_id": ledger_id, "items": len(prepared.items)})

            plan = reconcile(self.products.catalog(), None, prepared)
            self._persist_stock(plan, ledger_id, "ledger.create")
            self.ledger.insert(prepared)
            regenerate(self.receivables, prepared)
            if prepared.summary_id is not None:
                self.summaries.mark_used(prepared.summary_id, ledger_id)

        log_event(self._log, "ledger.create", "persist", "Ledger entry saved",
                  {"ledger_id": ledger_id, "total_sale": prepared.total_sale,
                   "amount_due": prepared.amount_due})
        return self.get(ledger_id)

    def update(self, ledger_id: int, entry: LedgerEntry, *, auto_rewards: bool = True) -> LedgerEntry:
        self.validate(entry)
        prepared = replace(self._prepare(entry, auto_rewards), ledger_id=ledger_id)

        with immediate_tx(self.conn):
            # OLD is read before anything changes
            old = self.get(ledger_id)
            log_event(self._log, "ledger.update", "start", "Updating ledger entry",
                      {"ledger_id": ledger_id})

            plan = reconcile(self.products.catalog(), old, prepared)
            self._persist_stock(plan, ledger_id, "ledger.update")
            self.ledger.replace(prepared)
            regenerate(self.receivables, prepared)
            if prepared.summary_id != old.summary_id:
                self.summaries.release_for_ledger(ledger_id)
                if prepared.summary_id is not None:
                    self.summaries.mark_used(prepared.summary_id, ledger_id)

        log_event(self._log, "ledger.update", "persist", "Ledger entry updated",
                  {"ledger_id": ledger_id, "total_sale": prepared.total_sale,
                   "amount_due": prepared.amount_due})
        return self.get(ledger_id)

    def delete(self, ledger_id: int) -> LedgerEntry:
        """
        Give the entry's stock back, release its daily summary and remove it.
        Its receivables (derived postings and recorded payments) cascade.
        """
        with immediate_tx(self.conn):
            old = self.get(ledger_id)
            log_event(self._log, "ledger.delete", "start", "Deleting ledger entry",
                      {"ledger_id": ledger_id})

            plan = reconcile(self.products.catalog(), old, None)
            self._persist_stock(plan, ledger_id, "ledger.delete")
            self.summaries.release_for_ledger(ledger_id)
            self.ledger.delete(ledger_id)

        log_event(self._log, "ledger.delete", "persist", "Ledger entry deleted",
                  {"ledger_id": ledger_id})
        return old

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _prepare(self, entry: LedgerEntry, auto_rewards: bool) -> LedgerEntry:
        """Fill cached names and the weekday, apply rewards and totals."""
        catalog = self.products.catalog()
        reward_catalog = self.rewards.catalog()

        items = [
            replace(i, product_name=i.product_name or self._product_name(catalog, i.product_id))
            for i in entry.items
        ]
        damaged = [
            replace(d, product_name=d.product_name or self._product_name(catalog, d.product_id))
            for d in entry.damaged_items
        ]
        rewards = [
            replace(r, reward_name=r.reward_name or getattr(reward_catalog.get(r.reward_id), "name", ""))
            for r in entry.reward_items
        ]
        prepared = replace(
            entry,
            market=entry.market.strip(),
            day=weekday_name(entry.date),
            items=items,
            damaged_items=damaged,
            reward_items=rewards,
        )
        if auto_rewards:
            prepared = self.refresh_rewards(prepared)
        return apply_totals(prepared)

    def _product_name(self, catalog, product_id: int) -> str:
        product = catalog.get(product_id)
        if product is None:
            self._log.debug("Product %s not found while caching line names", product_id)
            return ""
        return product.name

    def _persist_stock(self, plan: StockPlan, ledger_id: int, op: str) -> None:
        log_event(self._log, op, "reconcile", "Stock reconciled",
                  {"ledger_id": ledger_id, "products": len(plan.deltas)}, level=logging.DEBUG)
        self.products.write_quantities(plan.quantities())
        for product_id, delta in plan.deltas.items():
            self.products.journal.record(product_id, delta, "ledger", ledger_id=ledger_id)

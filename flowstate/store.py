"""The record store: the single owner of a user's budgeting records.

Every mutation swaps the whole immutable ``Snapshot`` under a lock and then
publishes ``STORE_CHANGED`` so subscribers (persistence, cached views) can
react. Unknown ids make update/delete calls no-ops.
"""
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from flowstate import transforms
from flowstate.domain import (
    CURRENCIES,
    MonthlyRecord,
    QuickExpense,
    RecurringItem,
    SavingsEntry,
    Snapshot,
    SpendDays,
    Transaction,
)
from flowstate.events import STORE_CHANGED, EventBus, persist_handler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UndoDelete:
    """Compensating command for a deleted transaction."""
    transaction: Transaction

    def apply(self, store: "RecordStore") -> None:
        store.restore_transaction(self.transaction)


@dataclass(frozen=True)
class UndoDeleteRecurring:
    kind: str  # income | expense
    item: RecurringItem

    def apply(self, store: "RecordStore") -> None:
        store.restore_recurring(self.kind, self.item)


class RecordStore:
    def __init__(
        self,
        storage=None,
        bus: Optional[EventBus] = None,
        id_factory: Callable[[], str] = transforms.new_id,
        initial: Optional[Snapshot] = None,
    ):
        self._lock = threading.RLock()
        self.bus = bus or EventBus()
        self._new_id = id_factory
        if initial is None and storage is not None:
            initial = storage.load()
        self._snapshot = initial or Snapshot()
        if storage is not None:
            self.bus.subscribe(STORE_CHANGED, persist_handler(storage))

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _commit(self, action: str, **changes) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, **changes)
            logger.debug("store %s", action)
            self.bus.publish(STORE_CHANGED, {"action": action, "snapshot": self._snapshot})

    # transactions

    def add_transaction(self, amount: float, category: str, note: str, date: datetime,
                        is_favorite: bool = False) -> Transaction:
        with self._lock:
            t = Transaction(self._new_id(), amount, category, note, date, is_favorite)
            self._commit("add_transaction",
                         transactions=transforms.prepend(self._snapshot.transactions, t))
            return t

    def update_transaction(self, tx_id: str, **changes) -> None:
        with self._lock:
            if transforms.find_by_id(self._snapshot.transactions, tx_id) is None:
                return
            self._commit("update_transaction",
                         transactions=transforms.update_by_id(self._snapshot.transactions, tx_id, changes))

    def delete_transaction(self, tx_id: str) -> Optional[UndoDelete]:
        with self._lock:
            removed = transforms.find_by_id(self._snapshot.transactions, tx_id)
            if removed is None:
                return None
            self._commit("delete_transaction",
                         transactions=transforms.delete_by_id(self._snapshot.transactions, tx_id))
            return UndoDelete(removed)

    def restore_transaction(self, t: Transaction) -> None:
        with self._lock:
            restored = transforms.restore_transaction(self._snapshot.transactions, t)
            if restored is self._snapshot.transactions:
                return
            self._commit("restore_transaction", transactions=restored)

    def toggle_favorite_transaction(self, tx_id: str) -> None:
        with self._lock:
            current = transforms.find_by_id(self._snapshot.transactions, tx_id)
            if current is None:
                return
            self.update_transaction(tx_id, is_favorite=not current.is_favorite)

    # recurring income / expenses

    def _recurring_field(self, kind: str) -> str:
        if kind == "income":
            return "recurring_income"
        if kind == "expense":
            return "recurring_expenses"
        raise ValueError(f"Unknown recurring kind: {kind}")

    def add_recurring(self, kind: str, name: str, amount: float, frequency: str) -> RecurringItem:
        field_name = self._recurring_field(kind)
        with self._lock:
            item = RecurringItem(self._new_id(), name, amount, frequency)
            items = transforms.append(getattr(self._snapshot, field_name), item)
            self._commit(f"add_recurring_{kind}", **{field_name: items})
            return item

    def update_recurring(self, kind: str, item_id: str, **changes) -> None:
        field_name = self._recurring_field(kind)
        with self._lock:
            items = getattr(self._snapshot, field_name)
            if transforms.find_by_id(items, item_id) is None:
                return
            self._commit(f"update_recurring_{kind}",
                         **{field_name: transforms.update_by_id(items, item_id, changes)})

    def delete_recurring(self, kind: str, item_id: str) -> Optional[UndoDeleteRecurring]:
        field_name = self._recurring_field(kind)
        with self._lock:
            items = getattr(self._snapshot, field_name)
            removed = transforms.find_by_id(items, item_id)
            if removed is None:
                return None
            self._commit(f"delete_recurring_{kind}", **{field_name: transforms.delete_by_id(items, item_id)})
            return UndoDeleteRecurring(kind, removed)

    def restore_recurring(self, kind: str, item: RecurringItem) -> None:
        field_name = self._recurring_field(kind)
        with self._lock:
            items = getattr(self._snapshot, field_name)
            restored = transforms.restore_by_id(items, item)
            if restored is items:
                return
            self._commit(f"restore_recurring_{kind}", **{field_name: restored})

    def add_recurring_income(self, name: str, amount: float, frequency: str = "monthly") -> RecurringItem:
        return self.add_recurring("income", name, amount, frequency)

    def update_recurring_income(self, item_id: str, **changes) -> None:
        self.update_recurring("income", item_id, **changes)

    def delete_recurring_income(self, item_id: str) -> Optional[UndoDeleteRecurring]:
        return self.delete_recurring("income", item_id)

    def add_recurring_expense(self, name: str, amount: float, frequency: str = "monthly") -> RecurringItem:
        return self.add_recurring("expense", name, amount, frequency)

    def update_recurring_expense(self, item_id: str, **changes) -> None:
        self.update_recurring("expense", item_id, **changes)

    def delete_recurring_expense(self, item_id: str) -> Optional[UndoDeleteRecurring]:
        return self.delete_recurring("expense", item_id)

    # savings ledger

    def add_savings_entry(self, week_start: datetime, amount: float, date: datetime) -> SavingsEntry:
        with self._lock:
            entry = SavingsEntry(self._new_id(), week_start, amount, date)
            self._commit("add_savings_entry", savings=transforms.prepend(self._snapshot.savings, entry))
            return entry

    def bank_savings(self, amount: float, week_start: datetime, now: datetime) -> SavingsEntry:
        return self.add_savings_entry(week_start, abs(amount), now)

    def withdraw_savings(self, amount: float, now: datetime) -> SavingsEntry:
        return self.add_savings_entry(now, -abs(amount), now)

    # monthly history

    def add_monthly_record(self, month: str, income: float, fixed_expenses: float,
                           variable_expenses: float, saved_amount: float, date: datetime) -> MonthlyRecord:
        with self._lock:
            record = MonthlyRecord(self._new_id(), month, income, fixed_expenses,
                                   variable_expenses, saved_amount, date)
            self._commit("add_monthly_record",
                         monthly_records=transforms.prepend(self._snapshot.monthly_records, record))
            return record

    # quick expenses

    def add_quick_expense(self, amount: float, category: str, note: str,
                          is_favorite: bool = False) -> QuickExpense:
        with self._lock:
            qe = QuickExpense(self._new_id(), amount, category, note, 0, is_favorite)
            self._commit("add_quick_expense",
                         quick_expenses=transforms.prepend(self._snapshot.quick_expenses, qe))
            return qe

    def increment_quick_expense_usage(self, qe_id: str) -> None:
        with self._lock:
            current = transforms.find_by_id(self._snapshot.quick_expenses, qe_id)
            if current is None:
                return
            self._commit("increment_quick_expense_usage",
                         quick_expenses=transforms.update_by_id(
                             self._snapshot.quick_expenses, qe_id, {"usage_count": current.usage_count + 1}))

    def toggle_favorite_quick_expense(self, qe_id: str) -> None:
        with self._lock:
            current = transforms.find_by_id(self._snapshot.quick_expenses, qe_id)
            if current is None:
                return
            self._commit("toggle_favorite_quick_expense",
                         quick_expenses=transforms.update_by_id(
                             self._snapshot.quick_expenses, qe_id, {"is_favorite": not current.is_favorite}))

    def delete_quick_expense(self, qe_id: str) -> None:
        with self._lock:
            if transforms.find_by_id(self._snapshot.quick_expenses, qe_id) is None:
                return
            self._commit("delete_quick_expense",
                         quick_expenses=transforms.delete_by_id(self._snapshot.quick_expenses, qe_id))

    # configuration

    def set_spend_days(self, days: SpendDays) -> None:
        self._commit("set_spend_days", spend_days=tuple(bool(d) for d in days))

    def toggle_spend_day(self, day: int) -> None:
        with self._lock:
            self._commit("toggle_spend_day",
                         spend_days=transforms.toggle_spend_day(self._snapshot.spend_days, day))

    def set_savings_rate(self, rate: float) -> None:
        self._commit("set_savings_rate", savings_rate=transforms.clamp_savings_rate(rate))

    def set_currency(self, currency: str) -> None:
        if currency not in CURRENCIES:
            logger.debug("ignoring unknown currency %r", currency)
            return
        self._commit("set_currency", currency=currency)

    def complete_onboarding(self) -> None:
        self._commit("complete_onboarding", has_completed_onboarding=True)

    def reset_all_data(self) -> None:
        with self._lock:
            self._snapshot = Snapshot()
            logger.info("store reset to defaults")
            self.bus.publish(STORE_CHANGED, {"action": "reset_all_data", "snapshot": self._snapshot})

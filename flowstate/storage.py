"""Snapshot persistence: the storage port, its adapters and the JSON codec.

The persisted layout mirrors a key-value bucket::

    {"flowstate-storage": {"state": {...camelCase fields...}, "version": 1}}

``MIGRATIONS`` upgrades older payloads one version at a time.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from flowstate.dates import format_timestamp, parse_timestamp
from flowstate.domain import (
    CURRENCIES,
    DEFAULT_SPEND_DAYS,
    MonthlyRecord,
    QuickExpense,
    RecurringItem,
    SavingsEntry,
    Snapshot,
    SpendDays,
    Transaction,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DEFAULT_KEY = "flowstate-storage"


class SnapshotStorage(ABC):
    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        """Return the persisted snapshot, or None when nothing usable is stored."""
        pass

    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        pass


# encoding

def _transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "amount": t.amount,
        "category": t.category,
        "note": t.note,
        "date": format_timestamp(t.date),
        "isFavorite": t.is_favorite,
    }


def _recurring_to_dict(item: RecurringItem) -> dict:
    return {"id": item.id, "name": item.name, "amount": item.amount, "frequency": item.frequency}


def _savings_to_dict(entry: SavingsEntry) -> dict:
    return {
        "id": entry.id,
        "weekStart": format_timestamp(entry.week_start),
        "amount": entry.amount,
        "date": format_timestamp(entry.date),
    }


def _record_to_dict(record: MonthlyRecord) -> dict:
    return {
        "id": record.id,
        "month": record.month,
        "income": record.income,
        "fixedExpenses": record.fixed_expenses,
        "variableExpenses": record.variable_expenses,
        "savedAmount": record.saved_amount,
        "date": format_timestamp(record.date),
    }


def _quick_expense_to_dict(qe: QuickExpense) -> dict:
    return {
        "id": qe.id,
        "amount": qe.amount,
        "category": qe.category,
        "note": qe.note,
        "usageCount": qe.usage_count,
        "isFavorite": qe.is_favorite,
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        "transactions": [_transaction_to_dict(t) for t in snapshot.transactions],
        "recurringIncome": [_recurring_to_dict(i) for i in snapshot.recurring_income],
        "recurringExpenses": [_recurring_to_dict(i) for i in snapshot.recurring_expenses],
        "savings": [_savings_to_dict(s) for s in snapshot.savings],
        "monthlyRecords": [_record_to_dict(r) for r in snapshot.monthly_records],
        "quickExpenses": [_quick_expense_to_dict(q) for q in snapshot.quick_expenses],
        "spendDays": {str(day): on for day, on in enumerate(snapshot.spend_days)},
        "savingsRate": snapshot.savings_rate,
        "currency": snapshot.currency,
        "hasCompletedOnboarding": snapshot.has_completed_onboarding,
    }


# decoding

def _transaction_from_dict(d: dict) -> Transaction:
    return Transaction(
        id=str(d["id"]),
        amount=float(d["amount"]),
        category=str(d.get("category", "other")),
        note=str(d.get("note", "")),
        date=parse_timestamp(d["date"]),
        is_favorite=bool(d.get("isFavorite", False)),
    )


def _recurring_from_dict(d: dict) -> RecurringItem:
    return RecurringItem(
        id=str(d["id"]),
        name=str(d.get("name", "")),
        amount=float(d["amount"]),
        frequency=str(d.get("frequency") or "monthly"),
    )


def _savings_from_dict(d: dict) -> SavingsEntry:
    return SavingsEntry(
        id=str(d["id"]),
        week_start=parse_timestamp(d["weekStart"]),
        amount=float(d["amount"]),
        date=parse_timestamp(d["date"]),
    )


def _record_from_dict(d: dict) -> MonthlyRecord:
    return MonthlyRecord(
        id=str(d["id"]),
        month=str(d["month"]),
        income=float(d.get("income", 0)),
        fixed_expenses=float(d.get("fixedExpenses", 0)),
        variable_expenses=float(d.get("variableExpenses", 0)),
        saved_amount=float(d.get("savedAmount", 0)),
        date=parse_timestamp(d["date"]),
    )


def _quick_expense_from_dict(d: dict) -> QuickExpense:
    return QuickExpense(
        id=str(d["id"]),
        amount=float(d["amount"]),
        category=str(d.get("category", "other")),
        note=str(d.get("note", "")),
        usage_count=int(d.get("usageCount", 0)),
        is_favorite=bool(d.get("isFavorite", False)),
    )


def _decode_many(raw: Any, decoder: Callable[[dict], Any], label: str) -> tuple:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        logger.warning("Expected a list of %s, got %s; ignoring", label, type(raw).__name__)
        return ()
    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning("Skipping non-dict %s at index %s", label, index)
            continue
        try:
            items.append(decoder(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping invalid %s at index %s", label, index)
    return tuple(items)


def _spend_days_from(raw: Any) -> SpendDays:
    if isinstance(raw, dict):
        return tuple(bool(raw.get(str(day), raw.get(day, False))) for day in range(7))
    if isinstance(raw, list) and len(raw) == 7:
        return tuple(bool(on) for on in raw)
    if raw is not None:
        logger.warning("Unrecognised spendDays value, using defaults")
    return DEFAULT_SPEND_DAYS


def _savings_rate_from(raw: Any) -> int:
    try:
        return int(max(0, min(100, round(float(raw)))))
    except (TypeError, ValueError):
        logger.warning("Invalid savingsRate %r, using 0", raw)
        return 0


def snapshot_from_dict(state: dict) -> Snapshot:
    currency = state.get("currency", "PHP")
    if currency not in CURRENCIES:
        logger.warning("Unknown currency %r, using PHP", currency)
        currency = "PHP"
    return Snapshot(
        transactions=_decode_many(state.get("transactions"), _transaction_from_dict, "transaction"),
        recurring_income=_decode_many(state.get("recurringIncome"), _recurring_from_dict, "recurring income"),
        recurring_expenses=_decode_many(state.get("recurringExpenses"), _recurring_from_dict, "recurring expense"),
        savings=_decode_many(state.get("savings"), _savings_from_dict, "savings entry"),
        monthly_records=_decode_many(state.get("monthlyRecords"), _record_from_dict, "monthly record"),
        quick_expenses=_decode_many(state.get("quickExpenses"), _quick_expense_from_dict, "quick expense"),
        spend_days=_spend_days_from(state.get("spendDays")),
        savings_rate=_savings_rate_from(state.get("savingsRate", 0)),
        currency=currency,
        has_completed_onboarding=bool(state.get("hasCompletedOnboarding", False)),
    )


# migrations

def _migrate_v0(state: dict) -> dict:
    """Unversioned payloads predate the savings rate and onboarding flag."""
    state = dict(state)
    state.setdefault("savingsRate", 0)
    state.setdefault("hasCompletedOnboarding", bool(state.get("recurringIncome")))
    return state


MIGRATIONS: dict[int, Callable[[dict], dict]] = {0: _migrate_v0}


def migrate(state: dict, version: int) -> Optional[dict]:
    if version > SCHEMA_VERSION:
        logger.warning("Stored schema version %s is newer than supported %s", version, SCHEMA_VERSION)
        return None
    while version < SCHEMA_VERSION:
        logger.info("Migrating stored state from version %s", version)
        state = MIGRATIONS[version](state)
        version += 1
    return state


def decode_bucket(bucket: Any) -> Optional[Snapshot]:
    """Decode ``{"state": ..., "version": N}`` (or its JSON string form)."""
    if isinstance(bucket, str):
        try:
            bucket = json.loads(bucket)
        except json.JSONDecodeError:
            logger.warning("Stored bucket is not valid JSON")
            return None
    if not isinstance(bucket, dict) or not isinstance(bucket.get("state"), dict):
        logger.warning("Stored bucket has no state object")
        return None
    try:
        version = int(bucket.get("version", 0))
    except (TypeError, ValueError):
        logger.warning("Invalid schema version %r", bucket.get("version"))
        return None
    state = migrate(bucket["state"], version)
    if state is None:
        return None
    return snapshot_from_dict(state)


def encode_bucket(snapshot: Snapshot) -> dict:
    return {"state": snapshot_to_dict(snapshot), "version": SCHEMA_VERSION}


# adapters

class MemoryStorage(SnapshotStorage):
    def __init__(self, key: str = DEFAULT_KEY):
        self.key = key
        self.data: dict = {}
        self.saves = 0

    def load(self) -> Optional[Snapshot]:
        if self.key not in self.data:
            return None
        return decode_bucket(self.data[self.key])

    def save(self, snapshot: Snapshot) -> None:
        self.data[self.key] = encode_bucket(snapshot)
        self.saves += 1


class JsonFileStorage(SnapshotStorage):
    _path_locks: dict[str, threading.RLock] = {}
    _path_locks_guard = threading.Lock()

    def __init__(self, file_path: str | os.PathLike = "flowstate-storage.json", key: str = DEFAULT_KEY):
        self._file_path = os.fspath(file_path)
        self.key = key
        abs_path = os.path.abspath(self._file_path)
        with self._path_locks_guard:
            if abs_path not in self._path_locks:
                self._path_locks[abs_path] = threading.RLock()
            self._lock = self._path_locks[abs_path]

    def _read(self) -> dict:
        with self._lock:
            try:
                with open(self._file_path, encoding="utf-8") as f:
                    data = json.load(f)
            except FileNotFoundError:
                logger.info("No stored data at %s", self._file_path)
                return {}
            except (OSError, json.JSONDecodeError):
                logger.warning("Failed to read JSON data from %s, starting empty", self._file_path)
                return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object JSON root in %s", self._file_path)
            return {}
        return data

    def load(self) -> Optional[Snapshot]:
        data = self._read()
        if self.key not in data:
            return None
        snapshot = decode_bucket(data[self.key])
        if snapshot is not None:
            logger.info("Loaded %d transactions from %s", len(snapshot.transactions), self._file_path)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        with self._lock:
            data = self._read()
            data[self.key] = encode_bucket(snapshot)
            directory = os.path.dirname(self._file_path) or "."
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".flowstate_", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._file_path)
            finally:
                if os.path.exists(tmp_path):
                    try:
                        os.remove(tmp_path)
                    except OSError:
                        logger.exception("Failed to clean up temporary file %s", tmp_path)

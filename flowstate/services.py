import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

from flowstate.domain import RecurringItem, Snapshot, Transaction
from flowstate.functional import (
    Either,
    Left,
    Maybe,
    Right,
    maybe,
    parse_amount,
    safe_lookup,
    validate_category,
    validate_frequency,
    validate_name,
)

logger = logging.getLogger(__name__)

Validator = Callable[[Snapshot, datetime], Sequence[str]]
Calculator = Callable[[Snapshot, datetime, Dict[str, Any]], Dict[str, Any]]


class BudgetService:
    """Facade running snapshot validators and budget calculators in order.

    validators: functions taking (snapshot, now) -> Sequence[str] of warnings
    calculators: functions taking (snapshot, now, acc) -> dict (partial results);
        ``acc`` holds everything the earlier calculators produced
    """

    def __init__(self, validators: Sequence[Validator], calculators: Sequence[Calculator]):
        self.validators = validators
        self.calculators = calculators

    def run(self, snapshot: Snapshot, now: datetime) -> Dict[str, Any]:
        """Run validators and calculators and return the result with intermediate steps."""
        report = {
            "now": now,
            "validation": [],
            "steps": [],
            "result": {}
        }

        for v in self.validators:
            try:
                msgs = v(snapshot, now)
            except Exception as e:
                logger.exception("validator %s failed", getattr(v, "__name__", v))
                msgs = [f"validator_error: {e}"]
            report["validation"].append({"validator": getattr(v, "__name__", str(v)), "messages": list(msgs)})

        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(snapshot, now, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            acc.update(out)

        report["result"] = acc
        return report


def _kind_error(kind: str) -> dict:
    return {"error": "unknown_kind", "message": f"Entry kind {kind!r} is not income or expense", "kind": kind}


def _not_found(what: str, item_id: str) -> dict:
    return {"error": f"{what}_not_found", "message": f"No {what} with ID {item_id}", "id": item_id}


class EntryService:
    """Input boundary: validates raw user input before it reaches the store.

    Rejected input returns ``Left`` with an error dict and leaves the store
    untouched.
    """

    def __init__(self, store, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self._clock = clock

    def _signed(self, kind: str, category: str, note: str) -> Either[dict, tuple[int, str, str]]:
        if kind == "income":
            # income entries always land in 'other'
            return Right((-1, "other", note.strip() or "Income"))
        if kind == "expense":
            return validate_category(category).map(lambda c: (1, c, note.strip()))
        return Left(_kind_error(kind))

    def quick_add(self, amount_text: Any, kind: str = "expense", category: str = "food",
                  note: str = "", when: Optional[datetime] = None) -> Either[dict, Transaction]:
        def _add(amount: float) -> Either[dict, Transaction]:
            return self._signed(kind, category, note).map(
                lambda s: self._record(s[0] * amount, s[1], s[2], when or self._clock(), kind))

        return parse_amount(amount_text).bind(_add)

    def _record(self, amount: float, category: str, note: str, when: datetime, kind: str) -> Transaction:
        t = self.store.add_transaction(amount, category, note, when)
        if kind == "expense" and note:
            self._remember(abs(amount), category, note)
        return t

    def _remember(self, amount: float, category: str, note: str) -> None:
        existing = next((qe for qe in self.store.snapshot.quick_expenses
                         if qe.note == note and qe.category == category), None)
        if existing is not None:
            self.store.increment_quick_expense_usage(existing.id)
        else:
            self.store.add_quick_expense(amount, category, note)

    def edit_transaction(self, tx_id: str, amount_text: Any, kind: str = "expense", category: str = "food",
                         note: str = "", when: Optional[datetime] = None) -> Either[dict, Transaction]:
        current = safe_lookup(self.store.snapshot.transactions, tx_id).get_or_else(None)
        if current is None:
            return Left(_not_found("transaction", tx_id))

        def _update(amount: float) -> Either[dict, Transaction]:
            def _apply(s: tuple[int, str, str]) -> Transaction:
                self.store.update_transaction(tx_id, amount=s[0] * amount, category=s[1], note=s[2],
                                              date=when or current.date)
                return safe_lookup(self.store.snapshot.transactions, tx_id).get_or_else(current)

            return self._signed(kind, category, note).map(_apply)

        return parse_amount(amount_text).bind(_update)

    def save_recurring(self, kind: str, name: str, amount_text: Any, frequency: str = "monthly",
                       item_id: Optional[str] = None) -> Either[dict, RecurringItem]:
        if kind not in ("income", "expense"):
            return Left(_kind_error(kind))
        field_name = "recurring_income" if kind == "income" else "recurring_expenses"
        if item_id is not None and safe_lookup(getattr(self.store.snapshot, field_name), item_id).is_none():
            return Left(_not_found(f"recurring_{kind}", item_id))

        def _save(fields: tuple[str, float, str]) -> RecurringItem:
            clean_name, amount, freq = fields
            if item_id is None:
                return self.store.add_recurring(kind, clean_name, amount, freq)
            self.store.update_recurring(kind, item_id, name=clean_name, amount=amount, frequency=freq)
            return RecurringItem(item_id, clean_name, amount, freq)

        return (
            validate_name(name)
            .bind(lambda n: parse_amount(amount_text).map(lambda a: (n, a)))
            .bind(lambda na: validate_frequency(frequency).map(lambda f: (na[0], na[1], f)))
            .map(_save)
        )

    def delete_transaction(self, tx_id: str) -> Maybe:
        return maybe(self.store.delete_transaction(tx_id))

    def delete_recurring(self, kind: str, item_id: str) -> Maybe:
        if kind not in ("income", "expense"):
            return maybe(None)
        return maybe(self.store.delete_recurring(kind, item_id))

    def undo(self, command) -> None:
        command.apply(self.store)

from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Iterable, Iterator

from flowstate.dates import same_day
from flowstate.domain import Transaction

Predicate = Callable[[Transaction], bool]


def is_expense(t: Transaction) -> bool:
    return t.amount > 0


# ad hoc income is recorded as a negative amount
def is_income_entry(t: Transaction) -> bool:
    return t.amount < 0


def in_window(start: datetime, end: datetime) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return start <= t.date < end

    return _filter


def is_today(now: date | datetime) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return same_day(t.date, now)

    return _filter


def by_category(category: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == category

    return _filter


def iter_transactions(trans: Iterable[Transaction], pred: Predicate) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t


def select(trans: Iterable[Transaction], pred: Predicate) -> tuple[Transaction, ...]:
    return tuple(iter_transactions(trans, pred))


def sum_amounts(trans: Iterable[Transaction]) -> float:
    return sum((t.amount for t in trans), 0.0)


def expenses_sum(trans: Iterable[Transaction]) -> float:
    return sum_amounts(iter_transactions(trans, is_expense))


def income_sum(trans: Iterable[Transaction]) -> float:
    """Absolute value of the negative (income) amounts."""
    return -sum_amounts(iter_transactions(trans, is_income_entry))


def category_totals(trans: Iterable[Transaction]) -> dict[str, float]:
    """Signed amount per category; income entries reduce their category."""
    totals: dict[str, float] = defaultdict(float)
    for t in trans:
        totals[t.category] += t.amount
    return dict(totals)

from dataclasses import replace
from typing import Any, Protocol, Tuple, TypeVar
from uuid import uuid4

from flowstate.domain import SpendDays, Transaction


class HasId(Protocol):
    id: str


R = TypeVar("R", bound=HasId)


def new_id() -> str:
    return uuid4().hex


def prepend(items: Tuple[R, ...], item: R) -> Tuple[R, ...]:
    return (item,) + items


def append(items: Tuple[R, ...], item: R) -> Tuple[R, ...]:
    return items + (item,)


def find_by_id(items: Tuple[R, ...], item_id: str) -> R | None:
    return next((i for i in items if i.id == item_id), None)


def update_by_id(items: Tuple[R, ...], item_id: str, changes: dict[str, Any]) -> Tuple[R, ...]:
    changes = {k: v for k, v in changes.items() if k != "id"}
    return tuple(replace(i, **changes) if i.id == item_id else i for i in items)


def delete_by_id(items: Tuple[R, ...], item_id: str) -> Tuple[R, ...]:
    return tuple(filter(lambda i: i.id != item_id, items))


def sort_newest_first(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    return tuple(sorted(trans, key=lambda t: t.date, reverse=True))


def restore_transaction(trans: Tuple[Transaction, ...], t: Transaction) -> Tuple[Transaction, ...]:
    """Re-insert ``t`` unless its id is already present, then sort by date."""
    if find_by_id(trans, t.id) is not None:
        return trans
    return sort_newest_first(trans + (t,))


def restore_by_id(items: Tuple[R, ...], item: R) -> Tuple[R, ...]:
    if find_by_id(items, item.id) is not None:
        return items
    return append(items, item)


def toggle_spend_day(days: SpendDays, day: int) -> SpendDays:
    return tuple(not on if i == day else on for i, on in enumerate(days))


def clamp_savings_rate(rate: float) -> int:
    return int(max(0, min(100, round(rate))))

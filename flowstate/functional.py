import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, TypeVar

from flowstate.domain import CATEGORIES, FREQUENCIES

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    def is_some(self) -> bool:
        return isinstance(self, Some)

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Some(f(self._value))

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Nothing()

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


def maybe(value: T | None) -> Maybe[T]:
    return Nothing() if value is None else Some(value)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_right(self) -> bool:
        return isinstance(self, Right)

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return Right(f(self._value))

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return Left(self._error)

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def safe_lookup(items: Iterable[Any], item_id: str) -> Maybe[Any]:
    for item in items:
        if item.id == item_id:
            return Some(item)
    return Nothing()


def parse_amount(text: Any) -> Either[dict, float]:
    """Parse a user-entered magnitude; only finite values above zero pass."""
    try:
        value = float(str(text).strip())
    except (TypeError, ValueError):
        return Left({
            "error": "invalid_amount",
            "message": f"Amount {text!r} is not a number",
            "amount": text,
        })
    if not math.isfinite(value) or value <= 0:
        return Left({
            "error": "non_positive_amount",
            "message": f"Amount must be greater than zero, got {text!r}",
            "amount": text,
        })
    return Right(round(value, 2))


def validate_category(category: str) -> Either[dict, str]:
    if category not in CATEGORIES:
        return Left({
            "error": "unknown_category",
            "message": f"Category {category!r} is not one of {', '.join(CATEGORIES)}",
            "category": category,
        })
    return Right(category)


def validate_frequency(frequency: str) -> Either[dict, str]:
    if frequency not in FREQUENCIES:
        return Left({
            "error": "unknown_frequency",
            "message": f"Frequency {frequency!r} is not one of {', '.join(FREQUENCIES)}",
            "frequency": frequency,
        })
    return Right(frequency)


def validate_name(name: str) -> Either[dict, str]:
    cleaned = (name or "").strip()
    if not cleaned:
        return Left({"error": "blank_name", "message": "Name must not be blank"})
    return Right(cleaned)


def pipe(x, *funcs):
    """pipe(x, f, g, h) == h(g(f(x)))"""
    res = x
    for f in funcs:
        res = f(res)
    return res

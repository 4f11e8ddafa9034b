from datetime import datetime

from flowstate.domain import Transaction
from flowstate.functional import (
    Left,
    Nothing,
    Right,
    Some,
    maybe,
    parse_amount,
    pipe,
    safe_lookup,
    validate_category,
    validate_frequency,
    validate_name,
)


def test_maybe_map_and_bind():
    assert Some(5).map(lambda x: x * 2).get_or_else(0) == 10
    assert Nothing().map(lambda x: x * 2).get_or_else(0) == 0

    def half(x):
        return Nothing() if x % 2 else Some(x // 2)

    assert Some(4).bind(half) == Some(2)
    assert Some(3).bind(half).is_none()
    assert Nothing().bind(half).is_none()


def test_maybe_from_optional():
    assert maybe(None) == Nothing()
    assert maybe(0).is_some()


def test_either_map_and_bind():
    assert Right(5).map(lambda x: x + 1) == Right(6)

    left = Left("error")
    assert left.map(lambda x: x + 1).is_left()
    assert left.get_or_else(0) == 0
    assert left.get_error() == "error"

    def non_zero(x):
        return Left("zero") if x == 0 else Right(x)

    assert Right(0).bind(non_zero).get_error() == "zero"
    assert Left("first").bind(non_zero).get_error() == "first"


def test_right_has_no_error():
    try:
        Right(1).get_error()
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")


def test_parse_amount_accepts_positive_numbers():
    assert parse_amount("12.5") == Right(12.5)
    assert parse_amount(" 7 ") == Right(7.0)
    assert parse_amount(3) == Right(3.0)
    assert parse_amount("0.129") == Right(0.13)


def test_parse_amount_rejects_non_numeric():
    result = parse_amount("abc")
    assert result.is_left()
    assert result.get_error()["error"] == "invalid_amount"
    assert parse_amount(None).is_left()
    assert parse_amount("").is_left()


def test_parse_amount_rejects_non_positive_and_non_finite():
    for text in ("0", "-5", "nan", "inf", "-inf"):
        result = parse_amount(text)
        assert result.is_left(), text
        assert result.get_error()["error"] == "non_positive_amount"


def test_validators():
    assert validate_category("food") == Right("food")
    assert validate_category("rent").get_error()["error"] == "unknown_category"
    assert validate_frequency("weekly") == Right("weekly")
    assert validate_frequency("yearly").get_error()["error"] == "unknown_frequency"
    assert validate_name("  Salary ") == Right("Salary")
    assert validate_name("   ").get_error()["error"] == "blank_name"


def test_safe_lookup():
    trans = (Transaction("t1", 10, "food", "", datetime(2026, 3, 1)),)
    assert safe_lookup(trans, "t1").get_or_else(None).id == "t1"
    assert safe_lookup(trans, "missing").is_none()


def test_pipe():
    assert pipe(3, lambda x: x + 1, lambda x: x * 2) == 8
    assert pipe("x") == "x"

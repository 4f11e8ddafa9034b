"""History and stats figures built on top of the budget view."""
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Iterable, Iterator

import pandas as pd

from flowstate.dates import WEEK, midnight, week_start
from flowstate.domain import BudgetView, MonthlyRecord, SavingsEntry, Transaction
from flowstate.functional import pipe

COLUMNS = ["id", "amount", "category", "note", "date", "is_favorite"]


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(t) for t in transactions], columns=COLUMNS)
    df["amount"] = df["amount"].astype(float)
    df["date"] = pd.to_datetime(df["date"])
    return df


def search_transactions(transactions: Iterable[Transaction], query: str = "",
                        category: str = "all") -> tuple[Transaction, ...]:
    q = query.lower()
    return tuple(
        t for t in transactions
        if (q in t.note.lower() or q in t.category.lower())
        and (category == "all" or t.category == category)
    )


def group_by_week(transactions: Iterable[Transaction]) -> list[tuple[datetime, tuple[Transaction, ...]]]:
    """Calendar weeks (Sunday start), newest week first."""
    groups: dict[datetime, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(week_start(t.date), []).append(t)
    return [(start, tuple(groups[start])) for start in sorted(groups, reverse=True)]


def history(transactions: Iterable[Transaction], query: str = "", category: str = "all"):
    return pipe(
        transactions,
        lambda ts: search_transactions(ts, query, category),
        group_by_week,
    )


def _daily_net(df: pd.DataFrame) -> pd.Series:
    return df.groupby(df["date"].dt.normalize())["amount"].sum()


def weekly_trend(transactions: Iterable[Transaction], weekly_bucket: float, now: datetime,
                 weeks: int = 4) -> pd.DataFrame:
    """Net amount per calendar week for the last ``weeks`` weeks, oldest first."""
    current = week_start(now)
    starts = pd.to_datetime([current - i * WEEK for i in range(weeks - 1, -1, -1)])

    df = transactions_frame(transactions)
    offset = pd.to_timedelta((df["date"].dt.dayofweek + 1) % 7, unit="D")
    spent = df.groupby(df["date"].dt.normalize() - offset)["amount"].sum()

    trend = pd.DataFrame({"week_start": starts})
    trend["spent"] = [float(spent.get(s, 0.0)) for s in starts]
    trend["budget"] = float(weekly_bucket)
    return trend


def spending_streak(transactions: Iterable[Transaction], daily_target: float, now: datetime,
                    horizon: int = 30) -> int:
    """Consecutive days, counting back from today, with net spend within target."""
    daily = _daily_net(transactions_frame(transactions))
    today = midnight(now)
    count = 0
    for i in range(horizon):
        day = pd.Timestamp(today - timedelta(days=i))
        if float(daily.get(day, 0.0)) <= daily_target:
            count += 1
        else:
            break
    return count


def average_daily_spend(this_month_spent: float, now: datetime) -> float:
    return this_month_spent / now.day


def weekly_efficiency(view: BudgetView) -> float:
    if view.weekly_bucket <= 0:
        return 0.0
    return max(0.0, (view.weekly_bucket - view.this_week_expenses) / view.weekly_bucket * 100)


def monthly_efficiency(view: BudgetView) -> float:
    if view.fixed_net <= 0:
        return 0.0
    return max(0.0, (view.fixed_net - view.this_month_expenses) / view.fixed_net * 100)


def top_categories(breakdown: dict[str, float], k: int) -> Iterator[tuple[str, float]]:
    ordered = sorted(
        ((cat, total) for cat, total in breakdown.items() if total > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    for cat, total in ordered[: max(0, k)]:
        yield cat, total


def savings_balance(savings: Iterable[SavingsEntry]) -> float:
    return sum((s.amount for s in savings), 0.0)


def lifetime_saved(records: Iterable[MonthlyRecord]) -> float:
    return sum((r.saved_amount for r in records), 0.0)

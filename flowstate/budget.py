"""Budget derivation: turns a store snapshot and "now" into a ``BudgetView``.

The monthly spendable budget is split into 4 equal weekly buckets over the
28-day budget period. Overspend in closed weeks is carried forward as debt
and spread evenly over the current and remaining weeks; underspend is not
carried. The current week's bucket is then spread over the spend days left
this week to give today's target.

Each step below is a calculator for ``BudgetService``: it receives the
snapshot, ``now`` and the results of earlier steps, and returns new figures.
Every divisor that can reach zero is guarded, so the derivation never raises
on degenerate configurations.
"""
import logging
from dataclasses import fields
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from flowstate import classify
from flowstate.dates import (
    WEEKS_PER_PERIOD,
    budget_period_end,
    budget_period_start,
    day_of_week,
    days_elapsed_in_week,
    days_remaining_in_month,
    month_key,
    week_bounds,
    week_end,
    week_number_in_month,
    week_start,
)
from flowstate.domain import BudgetView, BudgetWeek, RecurringItem, Snapshot
from flowstate.services import BudgetService

logger = logging.getLogger(__name__)

# 30/4 approximation, not calendar accurate
MONTHLY_FACTORS = {"daily": 30, "weekly": 4, "monthly": 1}


def to_monthly_amount(item: RecurringItem) -> float:
    return item.amount * MONTHLY_FACTORS.get(item.frequency, 1)


def monthly_total(items) -> float:
    return sum((to_monthly_amount(i) for i in items), 0.0)


# validators

def check_spend_days(snapshot: Snapshot, now: datetime) -> List[str]:
    if not any(snapshot.spend_days):
        return ["No spend days selected; daily targets are zero"]
    return []


def check_income(snapshot: Snapshot, now: datetime) -> List[str]:
    if not snapshot.recurring_income:
        return ["No recurring income configured"]
    return []


def check_fixed_net(snapshot: Snapshot, now: datetime) -> List[str]:
    net = monthly_total(snapshot.recurring_income) - monthly_total(snapshot.recurring_expenses)
    if snapshot.recurring_income and net <= 0:
        return [f"Recurring expenses exceed recurring income by {-net:.2f}"]
    return []


# calculators

def fixed_net(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    income = monthly_total(snapshot.recurring_income)
    expenses = monthly_total(snapshot.recurring_expenses)
    return {
        "total_monthly_income": income,
        "total_monthly_expenses": expenses,
        "fixed_net": income - expenses,
        "has_setup": len(snapshot.recurring_income) > 0,
    }


def savings_split(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    rate = max(0, min(100, snapshot.savings_rate))
    spendable = acc["fixed_net"] * (1 - rate / 100)
    return {
        "savings_rate": rate,
        "spendable_monthly_budget": spendable,
        "target_monthly_savings": acc["fixed_net"] * rate / 100,
        "base_weekly_bucket": spendable / WEEKS_PER_PERIOD,
    }


def period_position(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    week_num = week_number_in_month(now)
    start, end = week_bounds(week_num, now)
    # past the 28-day period the clamped week 4 no longer holds today
    if now >= budget_period_end(now):
        start, end = week_start(now), week_end(now)
    elapsed = days_elapsed_in_week(now)
    return {
        "period_start": budget_period_start(now),
        "period_end": budget_period_end(now),
        "current_week_num": week_num,
        "current_week_start": start,
        "current_week_end": end,
        "days_elapsed": elapsed,
        "days_left_in_week": 7 - elapsed + 1,
        "days_left_in_month": days_remaining_in_month(now),
    }


def week_spent(snapshot: Snapshot, week_num: int, now: datetime) -> float:
    start, end = week_bounds(week_num, now)
    return classify.expenses_sum(classify.iter_transactions(snapshot.transactions, classify.in_window(start, end)))


def debt_cascade(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    base = acc["base_weekly_bucket"]
    current = acc["current_week_num"]
    debt = 0.0
    for w in range(1, current):
        debt += max(0.0, week_spent(snapshot, w, now) - base)
    weeks_remaining = max(1, WEEKS_PER_PERIOD + 1 - current)
    debt_per_week = debt / weeks_remaining
    return {
        "total_debt_from_past_weeks": debt,
        "weeks_remaining": weeks_remaining,
        "debt_per_week": debt_per_week,
        "weekly_bucket": max(0.0, base - debt_per_week),
    }


def this_week(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    window = classify.in_window(acc["current_week_start"], acc["current_week_end"])
    week_tx = classify.select(snapshot.transactions, window)
    spent = classify.expenses_sum(week_tx)
    bucket = acc["weekly_bucket"]
    return {
        "this_week_transactions": week_tx,
        "this_week_expenses": spent,
        "weekly_remaining": bucket - spent,
        "weekly_progress": spent / bucket * 100 if bucket > 0 else 0.0,
    }


def daily_targets(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    days = snapshot.spend_days
    today = day_of_week(now)
    total_days = sum(1 for on in days if on)
    remaining_days = sum(1 for on in days[today:] if on)
    passed_days = sum(1 for on in days[:today] if on)

    base_daily = acc["weekly_bucket"] / total_days if total_days >= 1 else 0.0

    today_tx = classify.select(snapshot.transactions, classify.is_today(now))
    today_spent = classify.expenses_sum(today_tx)

    # today's spend goes back into the pool before it is redistributed
    if remaining_days > 0:
        adjusted = max(0.0, (acc["weekly_remaining"] + today_spent) / remaining_days)
    else:
        adjusted = base_daily

    spent_before_today = acc["this_week_expenses"] - today_spent
    return {
        "total_spend_days_per_week": total_days,
        "remaining_spend_days": remaining_days,
        "is_spend_day": bool(days[today]) if today < len(days) else False,
        "base_daily_target": base_daily,
        "today_transactions": today_tx,
        "today_expenses": today_spent,
        "adjusted_daily_target": adjusted,
        "weekly_buffer": base_daily * passed_days - spent_before_today,
    }


def period_totals(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    period_tx = classify.select(snapshot.transactions, classify.in_window(acc["period_start"], acc["period_end"]))
    expenses = classify.expenses_sum(period_tx)
    income = classify.income_sum(period_tx)
    effective = acc["fixed_net"] + income
    return {
        "this_month_transactions": period_tx,
        "this_month_expenses": expenses,
        "this_month_income": income,
        "effective_monthly_budget": effective,
        "monthly_remaining": effective - expenses,
    }


def budget_weeks(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    current = acc["current_week_num"]
    weeks = []
    for w in range(1, WEEKS_PER_PERIOD + 1):
        start, end = week_bounds(w, now)
        spent = week_spent(snapshot, w, now)
        net: Optional[float]
        if w < current:
            status, net = "past", acc["base_weekly_bucket"] - spent
        elif w == current:
            status, net = "current", acc["weekly_bucket"] - spent
        else:
            status, net = "future", None
        weeks.append(BudgetWeek(w, start, end, status, spent, net))
    return {"budget_weeks": tuple(weeks)}


def category_breakdowns(snapshot: Snapshot, now: datetime, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "category_breakdown": MappingProxyType(classify.category_totals(acc["this_week_transactions"])),
        "monthly_category_breakdown": MappingProxyType(classify.category_totals(acc["this_month_transactions"])),
    }


VALIDATORS = (check_spend_days, check_income, check_fixed_net)

CALCULATORS = (
    fixed_net,
    savings_split,
    period_position,
    debt_cascade,
    this_week,
    daily_targets,
    period_totals,
    budget_weeks,
    category_breakdowns,
)

VIEW_FIELDS = tuple(f.name for f in fields(BudgetView))


def default_service() -> BudgetService:
    return BudgetService(validators=VALIDATORS, calculators=CALCULATORS)


def derive_budget(snapshot: Snapshot, now: datetime, service: Optional[BudgetService] = None) -> BudgetView:
    report = (service or default_service()).run(snapshot, now)
    warnings = tuple(m for v in report["validation"] for m in v["messages"])
    result = dict(report["result"], warnings=warnings)
    logger.debug("derived budget for %s: weekly_bucket=%.2f", now.date(), result["weekly_bucket"])
    return BudgetView(**{name: result[name] for name in VIEW_FIELDS})


def period_summary(view: BudgetView, now: datetime) -> Dict[str, Any]:
    """Fields of the ``MonthlyRecord`` that closes out ``view``'s period."""
    return {
        "month": month_key(now),
        "income": view.total_monthly_income + view.this_month_income,
        "fixed_expenses": view.total_monthly_expenses,
        "variable_expenses": view.this_month_expenses,
        "saved_amount": view.monthly_remaining,
        "date": now,
    }

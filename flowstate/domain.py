from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

CATEGORIES = ("food", "transport", "entertainment", "shopping", "health", "utilities", "other")
FREQUENCIES = ("daily", "weekly", "monthly")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "PHP": "₱",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}
CURRENCIES = tuple(CURRENCY_SYMBOLS)

SpendDays = tuple[bool, bool, bool, bool, bool, bool, bool]

# Mon-Sat
DEFAULT_SPEND_DAYS: SpendDays = (False, True, True, True, True, True, True)


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: float      # + for expense, - for ad hoc income
    category: str
    note: str
    date: datetime     # local wall-clock time
    is_favorite: bool = False


@dataclass(frozen=True)
class RecurringItem:
    id: str
    name: str
    amount: float
    frequency: str     # daily | weekly | monthly


@dataclass(frozen=True)
class SavingsEntry:
    id: str
    week_start: datetime
    amount: float      # - for withdrawals
    date: datetime


@dataclass(frozen=True)
class MonthlyRecord:
    id: str
    month: str         # YYYY-MM
    income: float
    fixed_expenses: float
    variable_expenses: float
    saved_amount: float
    date: datetime


@dataclass(frozen=True)
class QuickExpense:
    id: str
    amount: float
    category: str
    note: str
    usage_count: int = 0
    is_favorite: bool = False


@dataclass(frozen=True)
class Snapshot:
    transactions: tuple[Transaction, ...] = ()
    recurring_income: tuple[RecurringItem, ...] = ()
    recurring_expenses: tuple[RecurringItem, ...] = ()
    savings: tuple[SavingsEntry, ...] = ()
    monthly_records: tuple[MonthlyRecord, ...] = ()
    quick_expenses: tuple[QuickExpense, ...] = ()
    spend_days: SpendDays = DEFAULT_SPEND_DAYS
    savings_rate: int = 0
    currency: str = "PHP"
    has_completed_onboarding: bool = False


# One of the 4 fixed weekly buckets of a budget period
@dataclass(frozen=True)
class BudgetWeek:
    week_num: int
    start: datetime
    end: datetime
    status: str        # past | current | future
    spent: float
    net: Optional[float]


@dataclass(frozen=True)
class BudgetView:
    # fixed income / expenses
    total_monthly_income: float
    total_monthly_expenses: float
    fixed_net: float
    savings_rate: int
    spendable_monthly_budget: float
    target_monthly_savings: float

    # period and weekly buckets
    period_start: datetime
    period_end: datetime
    current_week_num: int
    current_week_start: datetime
    current_week_end: datetime
    base_weekly_bucket: float
    total_debt_from_past_weeks: float
    weeks_remaining: int
    debt_per_week: float
    weekly_bucket: float
    budget_weeks: tuple[BudgetWeek, ...]

    # week stats
    this_week_expenses: float
    weekly_remaining: float
    weekly_progress: float
    weekly_buffer: float
    days_elapsed: int
    days_left_in_week: int
    this_week_transactions: tuple[Transaction, ...]

    # daily targets
    total_spend_days_per_week: int
    remaining_spend_days: int
    is_spend_day: bool
    base_daily_target: float
    adjusted_daily_target: float
    today_expenses: float
    today_transactions: tuple[Transaction, ...]

    # period stats
    this_month_expenses: float
    this_month_income: float
    effective_monthly_budget: float
    monthly_remaining: float
    days_left_in_month: int
    this_month_transactions: tuple[Transaction, ...]

    # category breakdown (read-only)
    category_breakdown: Mapping[str, float]
    monthly_category_breakdown: Mapping[str, float]

    has_setup: bool
    warnings: tuple[str, ...] = field(default=())

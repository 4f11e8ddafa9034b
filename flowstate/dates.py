"""Calendar arithmetic for weeks, months and the 4-week budget period.

Weeks run Sunday to Saturday. Every range is half-open ``[start, end)``, so
an instant exactly on a boundary belongs to the later range.
"""
import calendar
from datetime import date, datetime, time, timedelta

WEEKS_PER_PERIOD = 4
WEEK = timedelta(days=7)
MONTH_FORMAT = "%Y-%m"


def to_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())


def midnight(value: date | datetime) -> datetime:
    d = to_datetime(value)
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def day_of_week(value: date | datetime) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


def week_start(value: date | datetime) -> datetime:
    return midnight(value) - timedelta(days=day_of_week(value))


def week_end(value: date | datetime) -> datetime:
    return week_start(value) + WEEK


def month_start(value: date | datetime) -> datetime:
    return midnight(value).replace(day=1)


def month_end(value: date | datetime) -> datetime:
    start = month_start(value)
    last_day = calendar.monthrange(start.year, start.month)[1]
    return start + timedelta(days=last_day)


def days_remaining_in_month(value: date | datetime) -> int:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return last_day - value.day


def days_elapsed_in_week(value: date | datetime) -> int:
    """1-7, Sunday counts as 1."""
    return day_of_week(value) + 1


def budget_period_start(value: date | datetime) -> datetime:
    """The Sunday on or before the 1st of the month."""
    return week_start(month_start(value))


def budget_period_end(value: date | datetime) -> datetime:
    return budget_period_start(value) + WEEKS_PER_PERIOD * WEEK


def week_number_in_month(value: date | datetime) -> int:
    elapsed = to_datetime(value) - budget_period_start(value)
    week_num = elapsed // WEEK + 1
    return max(1, min(WEEKS_PER_PERIOD, week_num))


def week_bounds(week_num: int, now: date | datetime) -> tuple[datetime, datetime]:
    """Bounds of bucket ``week_num`` (1-4) of the period containing ``now``."""
    start = budget_period_start(now)
    return start + (week_num - 1) * WEEK, start + week_num * WEEK


def same_day(a: date | datetime, b: date | datetime) -> bool:
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into naive local time.

    Offset-aware values (including the ``Z`` suffix) are converted to the
    local zone first so calendar fields match what the user saw.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def month_key(value: date | datetime) -> str:
    return value.strftime(MONTH_FORMAT)

from datetime import date, datetime, time
from functools import lru_cache

from flowstate.budget import derive_budget
from flowstate.domain import BudgetView, Snapshot


# every figure depends on now's calendar day only, never its time
@lru_cache(maxsize=32)
def budget_for_day(snapshot: Snapshot, day: date) -> BudgetView:
    return derive_budget(snapshot, datetime.combine(day, time()))


def cached_budget(snapshot: Snapshot, now: date | datetime) -> BudgetView:
    day = now.date() if isinstance(now, datetime) else now
    return budget_for_day(snapshot, day)

import math
from datetime import datetime
from itertools import count

import pytest

from flowstate.budget import (
    CALCULATORS,
    default_service,
    derive_budget,
    period_summary,
    to_monthly_amount,
)
from flowstate.domain import RecurringItem, Snapshot, Transaction

ALL_DAYS = (True,) * 7
_ids = count(1)


def tx(amount, when, category="food", note=""):
    return Transaction(f"t{next(_ids)}", amount, category, note, when)


def make_snapshot(transactions=(), income=3000, expenses=1000, savings_rate=0, spend_days=ALL_DAYS):
    return Snapshot(
        transactions=tuple(transactions),
        recurring_income=(RecurringItem("i1", "Salary", income, "monthly"),) if income else (),
        recurring_expenses=(RecurringItem("e1", "Rent", expenses, "monthly"),) if expenses else (),
        spend_days=spend_days,
        savings_rate=savings_rate,
    )


def test_to_monthly_amount_normalization():
    assert to_monthly_amount(RecurringItem("a", "x", 10, "daily")) == 300
    assert to_monthly_amount(RecurringItem("b", "x", 100, "weekly")) == 400
    assert to_monthly_amount(RecurringItem("c", "x", 50, "monthly")) == 50


def test_fixed_net_sums_monthly_equivalents():
    snap = Snapshot(
        recurring_income=(RecurringItem("i1", "Salary", 2000, "monthly"), RecurringItem("i2", "Gig", 100, "weekly")),
        recurring_expenses=(RecurringItem("e1", "Coffee", 5, "daily"),),
    )
    view = derive_budget(snap, datetime(2026, 3, 1, 9))
    assert view.total_monthly_income == 2400
    assert view.total_monthly_expenses == 150
    assert view.fixed_net == 2250


def test_simple_steady_state():
    view = derive_budget(make_snapshot(), datetime(2026, 3, 1, 9))

    assert view.fixed_net == 2000
    assert view.spendable_monthly_budget == 2000
    assert view.base_weekly_bucket == 500
    assert view.base_daily_target == pytest.approx(71.43, abs=0.01)
    assert view.weekly_bucket == 500
    assert view.weekly_remaining == 500
    assert view.remaining_spend_days == 7
    assert view.adjusted_daily_target == pytest.approx(view.base_daily_target)
    assert view.current_week_num == 1
    assert view.has_setup is True
    assert view.warnings == ()


def test_overspend_is_carried_into_remaining_weeks():
    snap = make_snapshot([tx(700, datetime(2026, 3, 3, 12))])
    view = derive_budget(snap, datetime(2026, 3, 9, 10))

    assert view.current_week_num == 2
    assert view.total_debt_from_past_weeks == 200
    assert view.weeks_remaining == 3
    assert view.debt_per_week == pytest.approx(200 / 3)
    assert view.weekly_bucket == pytest.approx(500 - 200 / 3)
    assert view.this_week_expenses == 0
    assert view.weekly_remaining == pytest.approx(view.weekly_bucket)


def test_underspent_weeks_are_not_banked():
    snap = make_snapshot([tx(100, datetime(2026, 3, 3, 12))])
    view = derive_budget(snap, datetime(2026, 3, 9, 10))

    assert view.total_debt_from_past_weeks == 0
    assert view.weekly_bucket == 500


def test_debt_conservation_over_closed_weeks():
    spends = [700, 300, 900]
    snap = make_snapshot([
        tx(spends[0], datetime(2026, 3, 2)),
        tx(spends[1], datetime(2026, 3, 10)),
        tx(spends[2], datetime(2026, 3, 20)),
    ])
    view = derive_budget(snap, datetime(2026, 3, 23, 8))

    expected = sum(max(0, s - 500) for s in spends)
    assert view.current_week_num == 4
    assert view.total_debt_from_past_weeks == expected
    assert view.weeks_remaining == 1
    assert view.debt_per_week * view.weeks_remaining == pytest.approx(expected)
    assert view.weekly_bucket == 0


def test_weeks_remaining_never_below_one_after_period_end():
    # Mar 30 2026 falls after the 28-day period and clamps to week 4
    view = derive_budget(make_snapshot(), datetime(2026, 3, 30, 12))
    assert view.current_week_num == 4
    assert view.weeks_remaining == 1


def test_current_week_after_period_end_is_the_calendar_week():
    before = derive_budget(make_snapshot(), datetime(2026, 3, 30, 12))
    after = derive_budget(
        make_snapshot([tx(100, datetime(2026, 3, 30, 9)), tx(40, datetime(2026, 3, 25, 9))]),
        datetime(2026, 3, 30, 12),
    )

    assert after.current_week_start == datetime(2026, 3, 29)
    assert after.current_week_end == datetime(2026, 4, 5)
    assert after.this_week_expenses == 100
    assert after.today_expenses == 100
    assert after.weekly_remaining == pytest.approx(400)
    assert before.adjusted_daily_target == pytest.approx(500 / 6)
    assert after.adjusted_daily_target == pytest.approx(before.adjusted_daily_target)
    assert after.category_breakdown == {"food": 100}


def test_last_day_of_period_keeps_bucket_week():
    view = derive_budget(make_snapshot(), datetime(2026, 3, 28, 12))
    assert view.current_week_start == datetime(2026, 3, 22)
    assert view.current_week_end == datetime(2026, 3, 29)


def test_savings_rate_applied():
    view = derive_budget(make_snapshot(savings_rate=25), datetime(2026, 3, 1, 9))

    assert view.spendable_monthly_budget == 1500
    assert view.target_monthly_savings == 500
    assert view.base_weekly_bucket == 375


def test_negative_fixed_net_is_not_clamped():
    view = derive_budget(make_snapshot(income=500, expenses=1000), datetime(2026, 3, 1, 9))

    assert view.fixed_net == -500
    assert view.base_weekly_bucket == -125
    assert view.weekly_bucket == 0
    assert view.adjusted_daily_target == 0
    assert any("exceed" in w for w in view.warnings)


def test_zero_spend_days_guard():
    view = derive_budget(make_snapshot(spend_days=(False,) * 7), datetime(2026, 3, 4, 9))

    assert view.total_spend_days_per_week == 0
    assert view.base_daily_target == 0
    assert view.remaining_spend_days == 0
    assert view.adjusted_daily_target == 0
    assert view.is_spend_day is False
    assert math.isfinite(view.weekly_buffer)
    assert any("spend days" in w for w in view.warnings)


def test_todays_spend_is_redistributed_across_remaining_days():
    # Wednesday Mar 4; Sun-Tue already passed
    snap = make_snapshot([
        tx(100, datetime(2026, 3, 2, 13)),
        tx(50, datetime(2026, 3, 4, 8)),
    ])
    view = derive_budget(snap, datetime(2026, 3, 4, 10))

    assert view.this_week_expenses == 150
    assert view.today_expenses == 50
    assert view.weekly_remaining == 350
    assert view.remaining_spend_days == 4
    assert view.adjusted_daily_target == pytest.approx(100)
    assert view.weekly_buffer == pytest.approx(500 / 7 * 3 - 100)
    assert view.weekly_progress == pytest.approx(30)
    assert [t.amount for t in view.today_transactions] == [50]


def test_adjusted_target_floors_at_zero_when_week_overspent():
    snap = make_snapshot([tx(600, datetime(2026, 3, 2, 13))])
    view = derive_budget(snap, datetime(2026, 3, 4, 10))

    assert view.weekly_remaining == -100
    assert view.adjusted_daily_target == 0


def test_remaining_spend_days_follow_configuration():
    # default Mon-Sat pattern, checked on a Thursday
    view = derive_budget(make_snapshot(spend_days=(False, True, True, True, True, True, True)),
                         datetime(2026, 3, 5, 9))
    assert view.total_spend_days_per_week == 6
    assert view.remaining_spend_days == 3
    assert view.base_daily_target == pytest.approx(500 / 6)
    assert view.is_spend_day is True


def test_period_totals_use_the_anchored_period_not_the_calendar_month():
    # Oct 2026 period runs Sep 27 - Oct 24
    snap = make_snapshot([
        tx(40, datetime(2026, 9, 28, 12)),
        tx(60, datetime(2026, 9, 26, 12)),
        tx(-200, datetime(2026, 10, 2, 12), category="other", note="Gift"),
        tx(100, datetime(2026, 10, 19, 9)),
    ])
    view = derive_budget(snap, datetime(2026, 10, 19, 12))

    assert view.period_start == datetime(2026, 9, 27)
    assert view.period_end == datetime(2026, 10, 25)
    assert view.this_month_expenses == 140
    assert view.this_month_income == 200
    assert view.effective_monthly_budget == 2200
    assert view.monthly_remaining == 2060
    assert len(view.this_month_transactions) == 3


def test_income_entries_do_not_count_as_spend():
    snap = make_snapshot([tx(-300, datetime(2026, 3, 3), category="other")])
    view = derive_budget(snap, datetime(2026, 3, 4))

    assert view.this_week_expenses == 0
    assert view.category_breakdown == {"other": -300}


def test_budget_weeks_ledger():
    snap = make_snapshot([
        tx(700, datetime(2026, 3, 3)),
        tx(120, datetime(2026, 3, 10)),
    ])
    view = derive_budget(snap, datetime(2026, 3, 10, 18))
    weeks = view.budget_weeks

    assert [w.status for w in weeks] == ["past", "current", "future", "future"]
    assert weeks[0].spent == 700
    assert weeks[0].net == -200
    assert weeks[1].net == pytest.approx(view.weekly_bucket - 120)
    assert weeks[2].net is None
    assert weeks[3].start == datetime(2026, 3, 22)


def test_category_breakdowns_for_week_and_period():
    snap = make_snapshot([
        tx(30, datetime(2026, 3, 2), category="food"),
        tx(20, datetime(2026, 3, 3), category="transport"),
        tx(10, datetime(2026, 3, 9), category="food"),
    ])
    view = derive_budget(snap, datetime(2026, 3, 10))

    assert view.category_breakdown == {"food": 10}
    assert view.monthly_category_breakdown == {"food": 40, "transport": 20}


def test_empty_snapshot_is_total():
    view = derive_budget(Snapshot(), datetime(2026, 3, 4, 10))

    assert view.fixed_net == 0
    assert view.weekly_bucket == 0
    assert view.adjusted_daily_target == 0
    assert view.has_setup is False
    assert "No recurring income configured" in view.warnings


def test_service_records_every_step():
    report = default_service().run(make_snapshot(), datetime(2026, 3, 1, 9))

    assert [s["calculator"] for s in report["steps"]] == [c.__name__ for c in CALCULATORS]
    assert report["steps"][0]["output"]["fixed_net"] == 2000
    assert report["result"]["base_weekly_bucket"] == 500
    assert all(v["messages"] == [] for v in report["validation"])


def test_period_summary():
    snap = make_snapshot([tx(300, datetime(2026, 3, 2)), tx(-100, datetime(2026, 3, 3), category="other")])
    now = datetime(2026, 3, 28, 20)
    summary = period_summary(derive_budget(snap, now), now)

    assert summary["month"] == "2026-03"
    assert summary["income"] == 3100
    assert summary["fixed_expenses"] == 1000
    assert summary["variable_expenses"] == 300
    assert summary["saved_amount"] == 1800
    assert summary["date"] == now

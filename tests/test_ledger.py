import datetime as dt

import pytest

from greenpulse.calculator import calculate_impact
from greenpulse.ledger import (
    aggregate,
    calculate_streak,
    format_ledger_for_export,
    generate_share_card,
    period_range,
)
from greenpulse.schemas import ActivityLog, DaySession, DayTotals

D1 = dt.date(2024, 5, 1)
D2 = dt.date(2024, 5, 2)
D3 = dt.date(2024, 5, 3)


def _log(day, activity_type, subtype, quantity, unit):
    return ActivityLog(
        user_id="u1",
        activity_type=activity_type,
        subtype=subtype,
        quantity=quantity,
        unit=unit,
        timestamp=dt.datetime.combine(day, dt.time(9)),
        calculated_impact=calculate_impact(activity_type, subtype, quantity, unit),
    )


@pytest.fixture
def sample():
    sessions = [
        DaySession(user_id="u1", date=D3, daily_score=40,
                   totals=DayTotals(co2e_kg=1.0, avoided_co2e_kg=0.5, kwh=1.0, green_points=55)),
        DaySession(user_id="u1", date=D1, daily_score=28,
                   totals=DayTotals(co2e_kg=2.2, kwh=3, water_l=54, waste_kg=0.04, green_points=5)),
    ]
    activities = [
        _log(D1, "electricity", "ac", 2, "hours"),
        _log(D1, "water", "shower", 6, "minutes"),
        _log(D1, "waste", "plastic_bottle", 2, "count"),
        _log(D3, "waste", "plastic_bottle", 2, "count"),
        _log(D3, "materials", "used_plastic_item", 18, "count"),
    ]
    return sessions, activities


def test_empty_ledger_is_well_formed():
    ledger = aggregate([], [], "week", today=D2)
    assert ledger.period_type == "week"
    assert ledger.start_date == ledger.end_date == D2
    assert ledger.total_co2e_kg == 0
    assert ledger.days_tracked == 0
    assert ledger.average_daily_score == 0
    assert ledger.top_categories == []
    assert ledger.daily_trend == []


def test_empty_ledger_defaults_to_today():
    assert aggregate([], [], "month").start_date == dt.date.today()


def test_totals_and_dates(sample):
    ledger = aggregate(*sample, period_type="week")
    assert ledger.start_date == D1
    assert ledger.end_date == D3
    assert ledger.total_co2e_kg == pytest.approx(3.2)
    assert ledger.total_avoided_co2e_kg == pytest.approx(0.5)
    assert ledger.total_kwh == pytest.approx(4.0)
    assert ledger.total_water_l == 54
    assert ledger.total_green_points == 60
    assert ledger.average_daily_score == 34
    assert ledger.days_tracked == 2


def test_trend_is_one_point_per_session_in_date_order(sample):
    trend = aggregate(*sample, period_type="week").daily_trend
    assert [p.date for p in trend] == [D1, D3]
    assert [p.score for p in trend] == [28, 40]
    assert trend[0].co2e_kg == 2.2


def test_top_categories(sample):
    cats = aggregate(*sample, period_type="month").top_categories
    assert [c.category for c in cats] == ["electricity", "materials", "waste", "water"]
    electricity = cats[0]
    assert electricity.co2e_kg == pytest.approx(2.1)
    assert electricity.percentage == pytest.approx(2.1 / 3.2 * 100)
    assert cats[2].activity_count == 2
    assert cats[-1].percentage == 0


def test_category_percentage_zero_when_no_emissions():
    sessions = [DaySession(user_id="u1", date=D1)]
    activities = [_log(D1, "water", "tap", 3, "minutes")]
    cats = aggregate(sessions, activities, "day").top_categories
    assert cats[0].percentage == 0


def test_rejects_unknown_period():
    with pytest.raises(ValueError):
        aggregate([], [], "year")


def test_period_range():
    end = dt.date(2024, 5, 20)
    assert period_range("day", end) == (end, end)
    assert period_range("week", end) == (dt.date(2024, 5, 14), end)
    assert period_range("month", end) == (dt.date(2024, 5, 1), end)


# -----------------------------
# Streaks
# -----------------------------
def test_streak_counts_back_from_today():
    today = dt.date(2024, 5, 10)
    dates = [today - dt.timedelta(days=n) for n in (2, 0, 1, 4)]
    assert calculate_streak(dates, today=today) == 3


def test_streak_zero_without_today():
    today = dt.date(2024, 5, 10)
    assert calculate_streak([today - dt.timedelta(days=1)], today=today) == 0
    assert calculate_streak([], today=today) == 0


def test_streak_across_month_boundary():
    assert calculate_streak([dt.date(2024, 3, 1), dt.date(2024, 2, 29), dt.date(2024, 2, 28)],
                            today=dt.date(2024, 3, 1)) == 3


def test_streak_ignores_duplicate_dates():
    today = dt.date(2024, 5, 10)
    assert calculate_streak([today, today, today - dt.timedelta(days=1)], today=today) == 2


# -----------------------------
# Sharing
# -----------------------------
def test_export(sample):
    text = format_ledger_for_export(aggregate(*sample, period_type="week"))
    lines = text.splitlines()
    assert lines[0] == "GreenPulse WEEK Report"
    assert "Period: 2024-05-01 to 2024-05-03" in lines
    assert "CO2e Emissions: 3.20 kg" in lines
    assert "2024-05-01: 2.20 kg CO2e | Score: 28/100 | Points: 5" in lines


def test_share_card_headlines(sample):
    tracked = generate_share_card(aggregate(*sample, period_type="week"))
    assert tracked.headline == "I tracked 2 days on GreenPulse"
    assert tracked.stats[0] == "2.7 kg net CO2e"
    assert tracked.stats[-1] == "60 Green Points"

    sessions = [DaySession(user_id="u1", date=D1, totals=DayTotals(co2e_kg=1.0, avoided_co2e_kg=2.0))]
    win = generate_share_card(aggregate(sessions, [], "week"))
    assert win.headline == "I avoided 2.0 kg CO2e this week!"

import itertools

import pytest

from greenpulse.aggregator import apply_activity, daily_score, fold_day
from greenpulse.calculator import calculate_impact
from greenpulse.schemas import ActivityLog, DayTotals


def _day():
    return [
        calculate_impact("electricity", "ac", 2, "hours"),
        calculate_impact("water", "shower", 6, "minutes"),
        calculate_impact("waste", "plastic_bottle", 2, "count"),
    ]


def test_combined_day():
    totals = fold_day(_day())
    assert totals.kwh == 3
    assert totals.water_l == 54
    assert totals.waste_kg == 0.04
    assert totals.co2e_kg == 2.2
    assert totals.green_points == 0


def test_fold_accepts_activity_logs():
    logs = [
        ActivityLog(user_id="u1", activity_type="electricity", subtype="ac", quantity=2, unit="hours",
                    calculated_impact=_day()[0]),
    ]
    assert fold_day(logs).co2e_kg == 2.1


def test_order_does_not_matter():
    impacts = _day() + [
        calculate_impact("materials", "used_reusable_item", 3, "count"),
        calculate_impact("flights", "short_haul_business", 733.3, "km"),
        calculate_impact("waste", "compost", 7, "count"),
        calculate_impact("electricity", "led_bulb", 0.3, "hours"),
    ]
    expected = fold_day(impacts)
    for perm in itertools.permutations(impacts):
        assert fold_day(perm) == expected


def test_additive_path_equals_replay():
    impacts = _day()
    running = DayTotals()
    for impact in impacts:
        running = apply_activity(running, impact)
    assert running == fold_day(impacts)


def test_apply_keeps_green_points():
    start = DayTotals(green_points=40)
    assert apply_activity(start, _day()[0]).green_points == 40


def test_empty_day_is_zero():
    assert fold_day([]) == DayTotals()


# -----------------------------
# Daily score
# -----------------------------
@pytest.mark.parametrize("co2e,avoided,done,total,expected", [
    (0, 0, 0, 0, 50),
    (2.2, 0, 0, 0, 28),
    (1000, 0, 0, 0, 20),
    (0, 1000, 3, 3, 100),
    (0, 5, 2, 4, 90),
    (1000, 1000, 0, 5, 50),
    (0, 0.25, 0, 0, 53),  # 52.5 rounds half up
])
def test_daily_score(co2e, avoided, done, total, expected):
    assert daily_score(co2e, avoided, done, total) == expected


@pytest.mark.parametrize("co2e", [0, 0.01, 3, 1000, 1e9])
@pytest.mark.parametrize("avoided", [0, 0.01, 3, 1000, 1e9])
@pytest.mark.parametrize("done,total", [(0, 0), (0, 3), (3, 3), (10, 3)])
def test_daily_score_bounds(co2e, avoided, done, total):
    assert 0 <= daily_score(co2e, avoided, done, total) <= 100

import pytest

from greenpulse.calculator import calculate_impact
from greenpulse.points import action_points, compute_points, micro_action_points, suggest_next_day_goals
from greenpulse.schemas import ActivityLog, CalculatedImpact


def _avoided(kg):
    return CalculatedImpact(avoided_co2e_kg=kg, confidence=1)


def test_nothing_logged():
    result = compute_points([], 0, 0, 0, False)
    assert result.total_points == 0
    assert result.breakdown == []


def test_impact_points():
    result = compute_points([_avoided(0.5), _avoided(0.75)], 0, 0, 0, False)
    assert result.impact_points == 125
    assert result.behavior_points == 0
    assert result.total_points == 125
    assert result.breakdown == ["Avoided 1.25 kg CO2e = 125 impact points"]


def test_behavior_points_under_floor_cap():
    result = compute_points([], 2, 3, 2, True)
    # 20 goals + 20 close + 10 streak
    assert result.behavior_points == 50
    assert result.total_points == 50
    assert not any("capped" in line for line in result.breakdown)


def test_floor_cap_for_beginners():
    result = compute_points([], 5, 5, 20, True)
    # 30 + 20 + 50 = 100 raw, capped to the floor of 50
    assert result.impact_points == 0
    assert result.behavior_points == 50
    assert result.total_points == 50
    assert result.breakdown[-1].startswith("Behavior points capped at 50")


def test_ratio_cap_above_floor():
    result = compute_points([_avoided(0.4)], 3, 3, 10, True)
    # impact 40 -> cap max(80, 50) = 80; raw behaviour 100
    assert result.impact_points == 40
    assert result.behavior_points == 80
    assert result.total_points == 120


def test_large_impact_lifts_cap():
    result = compute_points([_avoided(1.0)], 3, 3, 10, True)
    assert result.behavior_points == 100
    assert result.total_points == 200
    assert result.bonus_points == 0


def test_breakdown_traces_every_contribution():
    result = compute_points([_avoided(0.2)], 1, 2, 3, True)
    assert result.breakdown == [
        "Avoided 0.20 kg CO2e = 20 impact points",
        "1 goals completed = 10 behavior points",
        "Daily close completed = 20 behavior points",
        "3-day streak = 15 behavior bonus",
    ]


@pytest.mark.parametrize("avoided", [0, 0.1, 0.3, 2])
@pytest.mark.parametrize("goals", [0, 1, 5])
@pytest.mark.parametrize("streak", [0, 4, 30])
@pytest.mark.parametrize("closed", [False, True])
def test_cap_invariant(avoided, goals, streak, closed):
    result = compute_points([_avoided(avoided)], goals, 5, streak, closed)
    assert result.behavior_points <= max(result.impact_points * 2, 50)
    assert result.total_points == result.impact_points + result.behavior_points + result.bonus_points


def test_accepts_activity_logs():
    log = ActivityLog(user_id="u1", activity_type="materials", subtype="used_reusable_item", quantity=5,
                      unit="count", calculated_impact=calculate_impact("materials", "used_reusable_item", 5, "count"))
    assert compute_points([log], 0, 0, 0, False).impact_points == 20


def test_micro_action_points():
    assert micro_action_points(0.05, 10) == 10
    assert micro_action_points(0.5, 10) == 50


def _log(activity_type):
    return ActivityLog(user_id="u1", activity_type=activity_type, subtype="x", quantity=1, unit="count",
                       calculated_impact=CalculatedImpact())


def test_goal_suggestions_follow_frequency():
    logs = [_log("water"), _log("water"), _log("electricity"), _log("waste"), _log("water")]
    assert suggest_next_day_goals(logs) == [
        "Take a 5-minute shower",
        "Reduce AC usage by 1 hour",
        "Recycle or compost waste",
    ]


def test_goal_suggestions_pad_with_general_goals():
    assert suggest_next_day_goals([_log("water")]) == [
        "Take a 5-minute shower",
        "Switch off unused lights",
        "Carry a reusable bag",
    ]
    assert len(suggest_next_day_goals([])) == 3


def test_impact_points_do_not_depend_on_order():
    values = [0.1, 0.2, 0.0051, 0.3, 0.0049]
    forward = compute_points([_avoided(v) for v in values], 0, 0, 0, False)
    backward = compute_points([_avoided(v) for v in reversed(values)], 0, 0, 0, False)
    assert forward == backward
    assert forward.impact_points == 61


def test_action_points_use_the_action_base():
    compost = calculate_impact("micro_action", "compost", 1, "count")
    assert action_points("micro_action", "compost", compost) == 25
    donate = calculate_impact("micro_action", "donate", 2, "count")
    # 0.3 kg avoided = 30 points, above the 20 base
    assert action_points("micro_action", "donate", donate) == 30
    recycle = calculate_impact("waste", "recycle", 1, "count")
    assert action_points("waste", "recycle", recycle) == 15


def test_action_points_only_for_actions():
    bottles = calculate_impact("waste", "plastic_bottle", 2, "count")
    assert action_points("waste", "plastic_bottle", bottles) is None
    assert action_points("electricity", "ac", calculate_impact("electricity", "ac", 1, "hours")) is None

# greenpulse/points.py
# Green Points: impact credit plus capped behaviour credit.
from collections import Counter
from typing import Iterable, List, Optional, Union

from .aggregator import fold_day, round_half_up
from .factors import DEFAULT_FACTORS, FactorTable
from .schemas import ActivityLog, CalculatedImpact, PointsResult

IMPACT_MULTIPLIER = 100  # 1 kg CO2e avoided = 100 points
GOAL_POINTS = 10
MAX_GOALS_REWARDED = 3
DAILY_CLOSE_POINTS = 20
STREAK_POINTS_PER_DAY = 5
MAX_STREAK_POINTS = 50
MAX_BEHAVIOR_RATIO = 2
MIN_BEHAVIOR_CAP = 50  # lets beginners with no avoided emissions still earn

GOAL_SUGGESTIONS = {
    "transport": "Use public transport or cycle",
    "energy": "Reduce AC usage by 1 hour",
    "electricity": "Reduce AC usage by 1 hour",
    "water": "Take a 5-minute shower",
    "food": "Have at least one veg meal",
    "waste": "Recycle or compost waste",
    "materials": "Carry a reusable bottle",
    "shopping": "Avoid unnecessary purchases",
    "flights": "Replace one short flight with a train",
}

GENERAL_GOALS = (
    "Switch off unused lights",
    "Carry a reusable bag",
    "Refuse single-use plastic",
)


def compute_points(
    activities: Iterable[Union[ActivityLog, CalculatedImpact]],
    goals_completed: int,
    total_goals: int,
    streak_days: int,
    daily_close_done: bool,
) -> PointsResult:
    breakdown: List[str] = []

    total_avoided = fold_day(activities).avoided_co2e_kg
    impact_points = round_half_up(total_avoided * IMPACT_MULTIPLIER)
    if impact_points > 0:
        breakdown.append(f"Avoided {total_avoided:.2f} kg CO2e = {impact_points} impact points")

    behavior_points = 0
    goal_points = min(goals_completed, MAX_GOALS_REWARDED) * GOAL_POINTS
    if goal_points > 0:
        behavior_points += goal_points
        breakdown.append(f"{goals_completed} goals completed = {goal_points} behavior points")

    if daily_close_done:
        behavior_points += DAILY_CLOSE_POINTS
        breakdown.append(f"Daily close completed = {DAILY_CLOSE_POINTS} behavior points")

    streak_points = min(streak_days * STREAK_POINTS_PER_DAY, MAX_STREAK_POINTS)
    if streak_points > 0:
        behavior_points += streak_points
        breakdown.append(f"{streak_days}-day streak = {streak_points} behavior bonus")

    max_behavior = max(impact_points * MAX_BEHAVIOR_RATIO, MIN_BEHAVIOR_CAP)
    capped = min(behavior_points, max_behavior)
    if capped < behavior_points:
        breakdown.append(f"Behavior points capped at {capped} (max {MAX_BEHAVIOR_RATIO}x impact, floor {MIN_BEHAVIOR_CAP})")

    # reserved for challenges; always 0 for now
    bonus_points = 0

    return PointsResult(
        impact_points=impact_points,
        behavior_points=capped,
        bonus_points=bonus_points,
        total_points=impact_points + capped + bonus_points,
        breakdown=breakdown,
    )


def micro_action_points(avoided_co2e_kg: float, base_points: int) -> int:
    """Points for a single micro action: impact points or the action's base points, whichever is higher."""
    return max(round_half_up(avoided_co2e_kg * IMPACT_MULTIPLIER), base_points)


def action_points(
    activity_type: str,
    subtype: str,
    impact: CalculatedImpact,
    factors: FactorTable = DEFAULT_FACTORS,
) -> Optional[int]:
    """Points for a micro action or waste diversion; None for any other activity."""
    if activity_type not in ("micro_action", "waste"):
        return None
    action = factors.waste_actions.get(subtype)
    if action is None:
        return None
    return micro_action_points(impact.avoided_co2e_kg, action.points)


def suggest_next_day_goals(activities: Iterable[ActivityLog], count: int = 3) -> List[str]:
    """Goals aimed at the most frequently logged activity types, padded with general ones."""
    frequency = Counter(a.activity_type for a in activities)
    suggestions: List[str] = []
    for activity_type, _ in frequency.most_common():
        text = GOAL_SUGGESTIONS.get(activity_type)
        if text and text not in suggestions:
            suggestions.append(text)
        if len(suggestions) == count:
            return suggestions

    for text in GENERAL_GOALS:
        if len(suggestions) == count:
            break
        if text not in suggestions:
            suggestions.append(text)
    return suggestions

# greenpulse/aggregator.py
# Day totals and the 0-100 daily score. Each sum is rounded to PRECISION, so
# folding a day gives the same totals in any order.
import math
from functools import reduce
from typing import Iterable, Union

from .calculator import PRECISION
from .schemas import ActivityLog, CalculatedImpact, DayTotals

# fields summed from CalculatedImpact into DayTotals
ADDITIVE_FIELDS = (
    "co2e_kg",
    "avoided_co2e_kg",
    "kwh",
    "water_l",
    "water_saved_l",
    "waste_kg",
    "waste_diverted",
)

BASE_SCORE = 50
EMISSION_PENALTY_CAP = 30
AVOIDED_BONUS_CAP = 30
SCORE_PER_KG = 10
GOAL_BONUS_MAX = 20


def impact_of(activity: Union[ActivityLog, CalculatedImpact]) -> CalculatedImpact:
    return activity.calculated_impact if isinstance(activity, ActivityLog) else activity


def apply_activity(totals: DayTotals, impact: CalculatedImpact) -> DayTotals:
    """Return ``totals`` plus one activity's impact. ``green_points`` is carried unchanged."""
    update = {
        name: round(getattr(totals, name) + getattr(impact, name), PRECISION)
        for name in ADDITIVE_FIELDS
    }
    return totals.model_copy(update=update)


def fold_day(activities: Iterable[Union[ActivityLog, CalculatedImpact]]) -> DayTotals:
    """Replay a day's activities from zero."""
    return reduce(apply_activity, (impact_of(a) for a in activities), DayTotals())


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def daily_score(co2e_kg: float, avoided_co2e_kg: float, goals_completed: int, total_goals: int) -> int:
    """Linear heuristic, clamped to [0, 100].

    50 base, minus up to 30 for emissions, plus up to 30 for avoided
    emissions, plus up to 20 for the share of goals completed.
    """
    score = float(BASE_SCORE)
    score -= min(EMISSION_PENALTY_CAP, co2e_kg * SCORE_PER_KG)
    score += min(AVOIDED_BONUS_CAP, avoided_co2e_kg * SCORE_PER_KG)
    if total_goals > 0:
        score += (min(goals_completed, total_goals) / total_goals) * GOAL_BONUS_MAX
    return max(0, min(100, round_half_up(score)))

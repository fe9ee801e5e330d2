# greenpulse/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any, Dict, List
import datetime as dt


# -----------------
# Engine records
# -----------------
class CalculatedImpact(BaseModel):
    model_config = ConfigDict(frozen=True)

    co2e_kg: float = 0.0
    kwh: float = 0.0
    water_l: float = 0.0
    waste_kg: float = 0.0
    # present only for avoidance-type activities
    saved_co2e_kg: Optional[float] = None
    avoided_co2e_kg: float = 0.0
    water_saved_l: float = 0.0
    waste_diverted: float = 0.0
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    explanation: str = ""


class DayTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    co2e_kg: float = 0.0
    avoided_co2e_kg: float = 0.0
    kwh: float = 0.0
    water_l: float = 0.0
    water_saved_l: float = 0.0
    waste_kg: float = 0.0
    waste_diverted: float = 0.0
    green_points: int = 0


class ActivityMetadata(BaseModel):
    confidence: float = 0.0
    source: str = "manual"


class ActivityLog(BaseModel):
    id: Optional[int] = None
    user_id: str
    day_session_id: Optional[int] = None
    activity_type: str
    subtype: str
    quantity: float
    unit: str
    timestamp: Optional[dt.datetime] = None
    calculated_impact: CalculatedImpact
    metadata: ActivityMetadata = Field(default_factory=ActivityMetadata)


class Goal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    text: str
    completed: bool = False
    category: Optional[str] = None


class DaySession(BaseModel):
    id: Optional[int] = None
    user_id: str
    date: dt.date
    totals: DayTotals = Field(default_factory=DayTotals)
    goals: List[Goal] = Field(default_factory=list)
    streak_days: int = 0
    daily_score: int = 50
    activity_count: int = 0
    daily_close_done: bool = False


class PointsResult(BaseModel):
    impact_points: int
    behavior_points: int
    bonus_points: int
    total_points: int
    breakdown: List[str]


class CategoryBreakdown(BaseModel):
    category: str
    co2e_kg: float
    percentage: float
    activity_count: int


class DailyTrendPoint(BaseModel):
    date: dt.date
    co2e_kg: float
    avoided_co2e_kg: float
    score: int
    green_points: int


class LedgerPeriod(BaseModel):
    period_type: str
    start_date: dt.date
    end_date: dt.date
    total_co2e_kg: float = 0.0
    total_avoided_co2e_kg: float = 0.0
    total_kwh: float = 0.0
    total_water_l: float = 0.0
    total_water_saved_l: float = 0.0
    total_waste_kg: float = 0.0
    total_waste_diverted: float = 0.0
    total_green_points: int = 0
    average_daily_score: float = 0.0
    days_tracked: int = 0
    top_categories: List[CategoryBreakdown] = Field(default_factory=list)
    daily_trend: List[DailyTrendPoint] = Field(default_factory=list)


class ShareCard(BaseModel):
    headline: str
    stats: List[str]
    emoji: str


class Suggestion(BaseModel):
    id: str
    category: str
    title: str
    description: str
    potential_saving_kg: float
    difficulty: str = "easy"


class MissingActivities(BaseModel):
    missing: List[str] = Field(default_factory=list)
    has_commute: bool = False
    has_meals: bool = False
    has_energy: bool = False


# -----------------
# Requests
# -----------------
class ActivityIn(BaseModel):
    # loosely typed on purpose: validation.validate_activity owns the messages
    user_id: Optional[str] = None
    activity_type: Optional[str] = None
    subtype: Optional[str] = None
    quantity: Optional[Any] = None
    unit: Optional[str] = None
    timestamp: Optional[dt.datetime] = None
    source: str = "manual"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CalculateIn(BaseModel):
    activity_type: Optional[str] = None
    subtype: Optional[str] = None
    quantity: Optional[Any] = None
    unit: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GoalIn(BaseModel):
    user_id: str
    date: dt.date
    text: str
    category: Optional[str] = None


class GoalUpdate(BaseModel):
    completed: bool


# -----------------
# Responses
# -----------------
class ActivityOut(BaseModel):
    success: bool = True
    activity_id: int
    calculated_impact: CalculatedImpact
    day_totals: DayTotals


class DayActivitiesOut(BaseModel):
    success: bool = True
    activities: List[ActivityLog]
    day_totals: DayTotals


class DayTotalsOut(BaseModel):
    success: bool = True
    day_totals: DayTotals


class CalculateOut(BaseModel):
    success: bool = True
    calculated_impact: CalculatedImpact
    action_points: Optional[int] = None

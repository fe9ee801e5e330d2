# greenpulse/ledger.py
# Day/week/month ledger, derived on demand from sessions and logs.
import datetime as dt
from collections import OrderedDict
from typing import Iterable, List, Optional, Sequence

from .calculator import PRECISION
from .schemas import (
    ActivityLog,
    CategoryBreakdown,
    DailyTrendPoint,
    DaySession,
    LedgerPeriod,
    ShareCard,
)

PERIOD_TYPES = ("day", "week", "month")

# share card reads as a win once avoided emissions pass this share of emitted
POSITIVE_SHARE_RATIO = 0.3


def _sum(values: Iterable[float]) -> float:
    total = 0.0
    for v in values:
        total = round(total + v, PRECISION)
    return total


def empty_ledger(period_type: str, today: Optional[dt.date] = None) -> LedgerPeriod:
    today = today or dt.date.today()
    return LedgerPeriod(period_type=period_type, start_date=today, end_date=today)


def category_breakdown(activities: Iterable[ActivityLog], total_co2e_kg: float) -> List[CategoryBreakdown]:
    """CO2e grouped by activity type, highest first."""
    grouped: "OrderedDict[str, List[float]]" = OrderedDict()
    for activity in activities:
        grouped.setdefault(activity.activity_type, []).append(activity.calculated_impact.co2e_kg)

    rows = []
    for category, values in grouped.items():
        co2e = _sum(values)
        rows.append(CategoryBreakdown(
            category=category,
            co2e_kg=co2e,
            percentage=(co2e / total_co2e_kg * 100) if total_co2e_kg > 0 else 0.0,
            activity_count=len(values),
        ))
    rows.sort(key=lambda r: r.co2e_kg, reverse=True)
    return rows


def aggregate(
    day_sessions: Sequence[DaySession],
    activities: Sequence[ActivityLog],
    period_type: str = "week",
    today: Optional[dt.date] = None,
) -> LedgerPeriod:
    """Fold sessions (and their activities) into one LedgerPeriod.

    An empty session list yields a zero-valued ledger dated to ``today``.
    """
    if period_type not in PERIOD_TYPES:
        raise ValueError(f"period_type must be one of: {', '.join(PERIOD_TYPES)}")
    if not day_sessions:
        return empty_ledger(period_type, today)

    sessions = sorted(day_sessions, key=lambda s: s.date)
    totals = [s.totals for s in sessions]
    total_co2e = _sum(t.co2e_kg for t in totals)

    return LedgerPeriod(
        period_type=period_type,
        start_date=sessions[0].date,
        end_date=sessions[-1].date,
        total_co2e_kg=total_co2e,
        total_avoided_co2e_kg=_sum(t.avoided_co2e_kg for t in totals),
        total_kwh=_sum(t.kwh for t in totals),
        total_water_l=_sum(t.water_l for t in totals),
        total_water_saved_l=_sum(t.water_saved_l for t in totals),
        total_waste_kg=_sum(t.waste_kg for t in totals),
        total_waste_diverted=_sum(t.waste_diverted for t in totals),
        total_green_points=sum(t.green_points for t in totals),
        average_daily_score=sum(s.daily_score for s in sessions) / len(sessions),
        days_tracked=len(sessions),
        top_categories=category_breakdown(activities, total_co2e),
        daily_trend=[
            DailyTrendPoint(
                date=s.date,
                co2e_kg=s.totals.co2e_kg,
                avoided_co2e_kg=s.totals.avoided_co2e_kg,
                score=s.daily_score,
                green_points=s.totals.green_points,
            )
            for s in sessions
        ],
    )


def period_range(period_type: str, end: dt.date):
    """Inclusive (start, end) window a period covers, ending on ``end``."""
    if period_type == "day":
        return end, end
    if period_type == "week":
        return end - dt.timedelta(days=6), end
    if period_type == "month":
        return end.replace(day=1), end
    raise ValueError(f"period_type must be one of: {', '.join(PERIOD_TYPES)}")


def calculate_streak(session_dates: Iterable[dt.date], today: Optional[dt.date] = None) -> int:
    """Consecutive days with a session, counting back from ``today``; any gap ends the count."""
    expected = today or dt.date.today()
    streak = 0
    for day in sorted(set(session_dates), reverse=True):
        if day != expected:
            break
        streak += 1
        expected -= dt.timedelta(days=1)
    return streak


def format_ledger_for_export(ledger: LedgerPeriod) -> str:
    lines = [
        f"GreenPulse {ledger.period_type.upper()} Report",
        f"Period: {ledger.start_date.isoformat()} to {ledger.end_date.isoformat()}",
        f"Days Tracked: {ledger.days_tracked}",
        "",
        "=== TOTALS ===",
        f"CO2e Emissions: {ledger.total_co2e_kg:.2f} kg",
        f"Avoided Emissions: {ledger.total_avoided_co2e_kg:.2f} kg",
        f"Energy Used: {ledger.total_kwh:.2f} kWh",
        f"Water Used: {ledger.total_water_l:.0f} L",
        f"Waste Diverted: {ledger.total_waste_diverted:g} items",
        f"Green Points: {ledger.total_green_points}",
        f"Average Daily Score: {ledger.average_daily_score:.0f}/100",
        "",
        "=== TOP CATEGORIES ===",
    ]
    lines += [
        f"{c.category}: {c.co2e_kg:.2f} kg ({c.percentage:.1f}%) - {c.activity_count} activities"
        for c in ledger.top_categories
    ]
    lines += ["", "=== DAILY TREND ==="]
    lines += [
        f"{p.date.isoformat()}: {p.co2e_kg:.2f} kg CO2e | Score: {p.score}/100 | Points: {p.green_points}"
        for p in ledger.daily_trend
    ]
    return "\n".join(lines)


def generate_share_card(ledger: LedgerPeriod) -> ShareCard:
    net = ledger.total_co2e_kg - ledger.total_avoided_co2e_kg
    positive = ledger.total_avoided_co2e_kg > ledger.total_co2e_kg * POSITIVE_SHARE_RATIO

    if positive:
        headline = f"I avoided {ledger.total_avoided_co2e_kg:.1f} kg CO2e this {ledger.period_type}!"
    else:
        headline = f"I tracked {ledger.days_tracked} days on GreenPulse"

    return ShareCard(
        headline=headline,
        stats=[
            f"{net:.1f} kg net CO2e",
            f"{ledger.total_kwh:.1f} kWh energy",
            f"{ledger.total_water_l:.0f} L water",
            f"{ledger.total_waste_diverted:g} waste items diverted",
            f"{ledger.total_green_points} Green Points",
        ],
        emoji="🌟" if positive else "🌱",
    )

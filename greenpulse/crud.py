# greenpulse/crud.py
import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .aggregator import daily_score
from .calculator import PRECISION
from .errors import NotFoundError, PersistenceError
from .ledger import calculate_streak
from .points import compute_points

logger = logging.getLogger(__name__)

# DayTotals field -> day_sessions column
TOTAL_COLUMNS = {
    "co2e_kg": "total_co2e_kg",
    "avoided_co2e_kg": "total_avoided_co2e_kg",
    "kwh": "total_kwh",
    "water_l": "total_water_l",
    "water_saved_l": "total_water_saved_l",
    "waste_kg": "total_waste_kg",
    "waste_diverted": "total_waste_diverted",
}

_DIALECT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


@contextmanager
def atomic(db: Session, name: str):
    """Commit on success; on a storage error roll back and raise PersistenceError."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s failed, rolled back", name)
        raise PersistenceError(f"{name} failed") from exc
    except Exception:
        db.rollback()
        raise


def _insert(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect]
    except KeyError:
        raise PersistenceError(f"atomic upsert is not supported on {dialect}") from None


def _utc_naive(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


# -----------------
# Conversions
# -----------------
def day_totals(row: Optional[models.DaySession]) -> schemas.DayTotals:
    if row is None:
        return schemas.DayTotals()
    values = {f: round(getattr(row, col) or 0.0, PRECISION) for f, col in TOTAL_COLUMNS.items()}
    return schemas.DayTotals(green_points=row.green_points or 0, **values)


def to_day_session(row: models.DaySession) -> schemas.DaySession:
    return schemas.DaySession(
        id=row.id,
        user_id=row.user_id,
        date=row.date,
        totals=day_totals(row),
        goals=[schemas.Goal.model_validate(g) for g in row.goals],
        streak_days=row.streak_days,
        daily_score=row.daily_score,
        activity_count=row.activity_count,
        daily_close_done=row.daily_close_done,
    )


def to_activity_log(row: models.ActivityLog) -> schemas.ActivityLog:
    return schemas.ActivityLog(
        id=row.id,
        user_id=row.user_id,
        day_session_id=row.day_session_id,
        activity_type=row.activity_type,
        subtype=row.subtype,
        quantity=row.quantity,
        unit=row.unit,
        timestamp=row.timestamp,
        calculated_impact=schemas.CalculatedImpact.model_validate(row.calculated_impact),
        metadata=schemas.ActivityMetadata.model_validate(row.meta or {}),
    )


# -----------------
# Day sessions
# -----------------
def get_day_session(db: Session, user_id: str, day: date) -> Optional[models.DaySession]:
    stmt = (
        select(models.DaySession)
        .where(models.DaySession.user_id == user_id, models.DaySession.date == day)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def upsert_day_totals(db: Session, user_id: str, day: date, impact: schemas.CalculatedImpact) -> schemas.DayTotals:
    """Add one impact to the (user, day) counters in a single INSERT ... ON CONFLICT DO UPDATE.

    The increment happens inside the statement, so concurrent writers for the
    same day cannot lose each other's updates. Does not commit.
    """
    table = models.DaySession.__table__
    now = datetime.utcnow()
    values = {col: getattr(impact, f) for f, col in TOTAL_COLUMNS.items()}

    stmt = _insert(db)(table).values(
        user_id=user_id, date=day, activity_count=1, created_at=now, updated_at=now, **values
    )
    increments = {col: table.c[col] + stmt.excluded[col] for col in values}
    increments["activity_count"] = table.c.activity_count + 1
    increments["updated_at"] = now
    stmt = stmt.on_conflict_do_update(index_elements=[table.c.user_id, table.c.date], set_=increments)

    db.execute(stmt)
    return day_totals(get_day_session(db, user_id, day))


def ensure_day_session(db: Session, user_id: str, day: date) -> models.DaySession:
    table = models.DaySession.__table__
    now = datetime.utcnow()
    stmt = _insert(db)(table).values(user_id=user_id, date=day, created_at=now, updated_at=now)
    db.execute(stmt.on_conflict_do_nothing(index_elements=[table.c.user_id, table.c.date]))
    return get_day_session(db, user_id, day)


def get_day_sessions(db: Session, user_id: str, start: date, end: date) -> List[schemas.DaySession]:
    rows = (
        db.query(models.DaySession)
        .filter(models.DaySession.user_id == user_id, models.DaySession.date >= start, models.DaySession.date <= end)
        .order_by(models.DaySession.date)
        .all()
    )
    return [to_day_session(r) for r in rows]


def _session_goals(db: Session, session: models.DaySession) -> List[models.Goal]:
    return db.query(models.Goal).filter(models.Goal.day_session_id == session.id).order_by(models.Goal.id).all()


def _session_logs(db: Session, session: models.DaySession) -> List[schemas.ActivityLog]:
    rows = db.query(models.ActivityLog).filter(models.ActivityLog.day_session_id == session.id).all()
    return [to_activity_log(r) for r in rows]


def derive_day(db: Session, session: models.DaySession) -> Tuple[int, int, schemas.PointsResult]:
    """Streak, daily score and points for a session, from what is stored right now."""
    goals = _session_goals(db, session)
    completed = sum(1 for g in goals if g.completed)

    dates = db.scalars(
        select(models.DaySession.date).where(
            models.DaySession.user_id == session.user_id, models.DaySession.date <= session.date
        )
    ).all()
    streak = calculate_streak(dates, today=session.date)

    totals = day_totals(session)
    score = daily_score(totals.co2e_kg, totals.avoided_co2e_kg, completed, len(goals))
    points = compute_points(_session_logs(db, session), completed, len(goals), streak, bool(session.daily_close_done))
    return streak, score, points


def refresh_day_session(db: Session, session: models.DaySession) -> schemas.PointsResult:
    """Recompute the non-additive fields of a session. Does not commit."""
    streak, score, points = derive_day(db, session)
    session.streak_days = streak
    session.daily_score = score
    session.green_points = points.total_points
    session.updated_at = datetime.utcnow()
    db.flush()
    return points


def refresh_following_sessions(db: Session, user_id: str, day: date) -> int:
    """Re-derive the run of consecutive sessions after ``day``; their streaks count through it.

    Stops at the first date gap. Returns how many sessions were refreshed. Does not commit.
    """
    rows = (
        db.query(models.DaySession)
        .filter(models.DaySession.user_id == user_id, models.DaySession.date > day)
        .order_by(models.DaySession.date)
        .all()
    )
    expected = day + timedelta(days=1)
    refreshed = 0
    for row in rows:
        if row.date != expected:
            break
        refresh_day_session(db, row)
        expected += timedelta(days=1)
        refreshed += 1
    return refreshed


# -----------------
# Activity logs
# -----------------
def append_activity_log(
    db: Session,
    user_id: str,
    day_session_id: int,
    activity_type: str,
    subtype: str,
    quantity: float,
    unit: str,
    impact: schemas.CalculatedImpact,
    timestamp: datetime,
    source: str = "manual",
) -> int:
    log = models.ActivityLog(
        user_id=user_id,
        day_session_id=day_session_id,
        activity_type=activity_type,
        subtype=subtype,
        quantity=quantity,
        unit=unit,
        calculated_impact=impact.model_dump(exclude_none=True),
        meta={"confidence": impact.confidence, "source": source},
        timestamp=timestamp,
    )
    db.add(log)
    db.flush()
    return log.id


def record_activity(
    db: Session,
    user_id: str,
    activity_type: str,
    subtype: str,
    quantity: float,
    unit: str,
    impact: schemas.CalculatedImpact,
    timestamp: Optional[datetime] = None,
    source: str = "manual",
) -> Tuple[int, schemas.DayTotals]:
    """Log one activity and fold it into its day, all in one transaction."""
    timestamp = _utc_naive(timestamp or datetime.now(timezone.utc))
    day = timestamp.date()
    with atomic(db, "record_activity"):
        upsert_day_totals(db, user_id, day, impact)
        session = get_day_session(db, user_id, day)
        log_id = append_activity_log(
            db, user_id, session.id, activity_type, subtype, quantity, unit, impact, timestamp, source
        )
        refresh_day_session(db, session)
        refresh_following_sessions(db, user_id, day)
    return log_id, day_totals(session)


def get_activity_logs(db: Session, user_id: str, start: date, end: date) -> List[schemas.ActivityLog]:
    rows = (
        db.query(models.ActivityLog)
        .join(models.DaySession)
        .filter(models.ActivityLog.user_id == user_id, models.DaySession.date >= start, models.DaySession.date <= end)
        .order_by(models.ActivityLog.timestamp.desc(), models.ActivityLog.id.desc())
        .all()
    )
    return [to_activity_log(r) for r in rows]


# -----------------
# Goals & daily close
# -----------------
def create_goal(db: Session, user_id: str, day: date, text: str, category: Optional[str] = None) -> schemas.Goal:
    with atomic(db, "create_goal"):
        session = ensure_day_session(db, user_id, day)
        goal = models.Goal(user_id=user_id, day_session_id=session.id, text=text, category=category)
        db.add(goal)
        db.flush()
        refresh_day_session(db, session)
        refresh_following_sessions(db, user_id, day)
    return schemas.Goal.model_validate(goal)


def set_goal_completed(db: Session, goal_id: int, completed: bool) -> schemas.Goal:
    goal = db.get(models.Goal, goal_id)
    if goal is None:
        raise NotFoundError(f"goal {goal_id} not found")
    with atomic(db, "set_goal_completed"):
        goal.completed = completed
        db.flush()
        refresh_day_session(db, goal.day_session)
    return schemas.Goal.model_validate(goal)


def get_goals(db: Session, user_id: str, day: date) -> List[schemas.Goal]:
    session = get_day_session(db, user_id, day)
    if session is None:
        return []
    return [schemas.Goal.model_validate(g) for g in _session_goals(db, session)]


def close_day(db: Session, user_id: str, day: date) -> Tuple[schemas.DaySession, schemas.PointsResult]:
    with atomic(db, "close_day"):
        session = ensure_day_session(db, user_id, day)
        session.daily_close_done = True
        points = refresh_day_session(db, session)
        refresh_following_sessions(db, user_id, day)
    return to_day_session(session), points


def get_points(db: Session, user_id: str, day: date) -> schemas.PointsResult:
    session = get_day_session(db, user_id, day)
    if session is None:
        return compute_points([], 0, 0, 0, False)
    return derive_day(db, session)[2]

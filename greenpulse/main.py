# greenpulse/main.py
import datetime as dt
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, crud, schemas
from .calculator import ImpactCalculator, verify_calculations
from .database import check_connection, get_db, init_db
from .errors import ActivityValidationError, NotFoundError, PersistenceError
from .factors import DEFAULT_FACTORS
from .ledger import aggregate, format_ledger_for_export, generate_share_card, period_range
from .points import action_points, suggest_next_day_goals
from .suggestions import detect_missing_activities, generate_smart_suggestions
from .validation import EXTENDED_ACTIVITY_TYPES, STRICT_ACTIVITY_TYPES, validate_activity, validate_preview

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# persisted activities go through the strict set; previews may use the extended one
calculator = ImpactCalculator(DEFAULT_FACTORS, STRICT_ACTIVITY_TYPES)
preview_calculator = ImpactCalculator(
    DEFAULT_FACTORS,
    EXTENDED_ACTIVITY_TYPES if config.PREVIEW_ACTIVITY_SET == "extended" else STRICT_ACTIVITY_TYPES,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    failures = verify_calculations(calculator)
    for failure in failures:
        logger.error("self-check mismatch: %s", failure)
    if not failures:
        logger.info("impact calculations verified against reference scenarios")

    if check_connection() and init_db():
        logger.info("database ready")
    else:
        logger.warning("storage unavailable, running in calculation-only mode: "
                       "POST /activity will fail, POST /calculate and GET /factors still work")
    yield


app = FastAPI(title="GreenPulse Impact API", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=config.CORS_ORIGINS, allow_methods=["*"], allow_headers=["*"])


# -----------------
# Error mapping
# -----------------
@app.exception_handler(ActivityValidationError)
def _validation_error(request: Request, exc: ActivityValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": exc.message})


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


@app.exception_handler(PersistenceError)
@app.exception_handler(SQLAlchemyError)
def _storage_error(request: Request, exc: Exception):
    if isinstance(exc, SQLAlchemyError):
        logger.error("storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"success": False, "error": "Storage unavailable"})


# -----------------
# Activities
# -----------------
@app.post("/activity", status_code=201, response_model=schemas.ActivityOut, response_model_exclude_none=True)
def log_activity(payload: schemas.ActivityIn, db: Session = Depends(get_db)):
    try:
        validate_activity(payload.model_dump())
    except ActivityValidationError as exc:
        logger.info("rejected activity for user %s: %s", payload.user_id, exc.message)
        raise

    impact = calculator.calculate(
        payload.activity_type, payload.subtype, payload.quantity, payload.unit, payload.metadata
    )
    activity_id, totals = crud.record_activity(
        db,
        payload.user_id,
        payload.activity_type,
        payload.subtype,
        float(payload.quantity),
        payload.unit,
        impact,
        timestamp=payload.timestamp,
        source=payload.source,
    )
    return schemas.ActivityOut(activity_id=activity_id, calculated_impact=impact, day_totals=totals)


@app.get("/activity/{user_id}/{day}", response_model=schemas.DayActivitiesOut, response_model_exclude_none=True)
def list_day_activities(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    activities = crud.get_activity_logs(db, user_id, day, day)
    totals = crud.day_totals(crud.get_day_session(db, user_id, day))
    return schemas.DayActivitiesOut(activities=activities, day_totals=totals)


@app.get("/activity/totals/{user_id}/{day}", response_model=schemas.DayTotalsOut)
def get_day_totals(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    return schemas.DayTotalsOut(day_totals=crud.day_totals(crud.get_day_session(db, user_id, day)))


# -----------------
# Calculation only (no storage)
# -----------------
@app.post("/calculate", response_model=schemas.CalculateOut, response_model_exclude_none=True)
def calculate(payload: schemas.CalculateIn):
    validate_preview(payload.model_dump())
    impact = preview_calculator.calculate(
        payload.activity_type, payload.subtype, payload.quantity, payload.unit, payload.metadata
    )
    points = None
    if impact.confidence > 0:
        points = action_points(payload.activity_type, payload.subtype, impact, preview_calculator.factors)
    return schemas.CalculateOut(calculated_impact=impact, action_points=points)


@app.get("/factors")
def factors():
    return {"success": True, "version": DEFAULT_FACTORS.version, "factor_table": DEFAULT_FACTORS.to_dict()}


@app.get("/health")
def health():
    connected = check_connection()
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "database": "connected" if connected else "disconnected",
    }


# -----------------
# Points & daily close
# -----------------
@app.get("/points/{user_id}/{day}", response_model=schemas.PointsResult)
def day_points(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    return crud.get_points(db, user_id, day)


@app.post("/day/{user_id}/{day}/close")
def close_day(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    session, points = crud.close_day(db, user_id, day)
    return {"success": True, "day_session": session, "points": points}


# -----------------
# Goals
# -----------------
@app.post("/goals", status_code=201, response_model=schemas.Goal)
def create_goal(payload: schemas.GoalIn, db: Session = Depends(get_db)):
    return crud.create_goal(db, payload.user_id, payload.date, payload.text, payload.category)


@app.get("/goals/{user_id}/{day}", response_model=List[schemas.Goal])
def list_goals(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    return crud.get_goals(db, user_id, day)


@app.patch("/goals/{goal_id}", response_model=schemas.Goal)
def update_goal(goal_id: int, payload: schemas.GoalUpdate, db: Session = Depends(get_db)):
    return crud.set_goal_completed(db, goal_id, payload.completed)


@app.get("/goals/{user_id}/{day}/suggestions")
def goal_suggestions(user_id: str, day: dt.date, db: Session = Depends(get_db)):
    activities = crud.get_activity_logs(db, user_id, day, day)
    return {
        "success": True,
        "suggestions": suggest_next_day_goals(activities),
        "smart_suggestions": generate_smart_suggestions(activities, calculator.factors),
        "missing": detect_missing_activities(activities),
    }


# -----------------
# Ledger
# -----------------
def _ledger(db: Session, user_id: str, period: str, end: Optional[dt.date]) -> schemas.LedgerPeriod:
    start, end = period_range(period, end or dt.date.today())
    sessions = crud.get_day_sessions(db, user_id, start, end)
    activities = crud.get_activity_logs(db, user_id, start, end)
    return aggregate(sessions, activities, period)


PERIOD = Query("week", pattern="^(day|week|month)$")


@app.get("/ledger/{user_id}", response_model=schemas.LedgerPeriod)
def ledger(user_id: str, period: str = PERIOD, end: Optional[dt.date] = None, db: Session = Depends(get_db)):
    return _ledger(db, user_id, period, end)


@app.get("/ledger/{user_id}/export", response_class=PlainTextResponse)
def ledger_export(user_id: str, period: str = PERIOD, end: Optional[dt.date] = None, db: Session = Depends(get_db)):
    return format_ledger_for_export(_ledger(db, user_id, period, end))


@app.get("/ledger/{user_id}/share", response_model=schemas.ShareCard)
def ledger_share(user_id: str, period: str = PERIOD, end: Optional[dt.date] = None, db: Session = Depends(get_db)):
    return generate_share_card(_ledger(db, user_id, period, end))

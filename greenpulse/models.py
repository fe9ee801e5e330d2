# greenpulse/models.py
from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class DaySession(Base):
    __tablename__ = "day_sessions"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_day_sessions_user_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)

    # additive counters, only ever incremented by crud.upsert_day_totals
    total_co2e_kg = Column(Float, nullable=False, default=0.0)
    total_avoided_co2e_kg = Column(Float, nullable=False, default=0.0)
    total_kwh = Column(Float, nullable=False, default=0.0)
    total_water_l = Column(Float, nullable=False, default=0.0)
    total_water_saved_l = Column(Float, nullable=False, default=0.0)
    total_waste_kg = Column(Float, nullable=False, default=0.0)
    total_waste_diverted = Column(Float, nullable=False, default=0.0)
    activity_count = Column(Integer, nullable=False, default=0)

    # derived, recomputed by crud.refresh_day_session
    green_points = Column(Integer, nullable=False, default=0)
    daily_score = Column(Integer, nullable=False, default=50)
    streak_days = Column(Integer, nullable=False, default=0)
    daily_close_done = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    activities = relationship("ActivityLog", back_populates="day_session")
    goals = relationship("Goal", back_populates="day_session", order_by="Goal.id")


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (Index("idx_al_user_timestamp", "user_id", "timestamp"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    day_session_id = Column(Integer, ForeignKey("day_sessions.id"), nullable=False, index=True)
    activity_type = Column(String, nullable=False)
    subtype = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    calculated_impact = Column(JSON, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    day_session = relationship("DaySession", back_populates="activities")


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    day_session_id = Column(Integer, ForeignKey("day_sessions.id"), nullable=False)
    text = Column(String, nullable=False)
    category = Column(String, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    day_session = relationship("DaySession", back_populates="goals")

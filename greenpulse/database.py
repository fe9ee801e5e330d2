# greenpulse/database.py
import logging
import os

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base

from . import config

logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        path = url.split("sqlite:///", 1)[-1]
        if path and path != ":memory:" and url.startswith("sqlite:///"):
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

    eng = create_engine(url, **kwargs)

    if eng.dialect.name == "sqlite":
        @event.listens_for(eng, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys = ON")
            cur.close()

    return eng


engine = make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection(bind=None) -> bool:
    try:
        with (bind or engine).connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1
    except SQLAlchemyError as exc:
        logger.warning("database connection check failed: %s", exc)
        return False


def init_db(bind=None) -> bool:
    """Create tables. Returns False (and logs) when storage is unreachable."""
    from . import models  # noqa: F401  registers tables on Base.metadata

    try:
        Base.metadata.create_all(bind=bind or engine)
    except SQLAlchemyError:
        logger.exception("failed to initialize database tables")
        return False
    return True

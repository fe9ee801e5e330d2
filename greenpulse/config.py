# greenpulse/config.py
import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "data", "greenpulse.db")

DATABASE_URL = os.environ.get("GREENPULSE_DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")
CORS_ORIGINS = [o.strip() for o in os.environ.get("GREENPULSE_CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.environ.get("GREENPULSE_LOG_LEVEL", "INFO").upper()
# "extended" lets /calculate preview transport, food, shopping and micro actions
PREVIEW_ACTIVITY_SET = os.environ.get("GREENPULSE_PREVIEW_ACTIVITY_SET", "extended").lower()

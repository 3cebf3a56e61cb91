# backend/medtrade/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/medtrade.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///medtrade.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Dealer deletion cascades through batches/requests/invoices/payments only
    # when enabled (seed and test databases).
    ALLOW_CASCADE_DELETE = _env_flag("ALLOW_CASCADE_DELETE")

    NEAR_EXPIRY_DAYS = int(os.environ.get("NEAR_EXPIRY_DAYS", "30"))

    DEFAULT_PAGE_LIMIT = 10
    MAX_PAGE_LIMIT = 100

    # None -> SystemClock; tests install a FixedClock
    CLOCK = None

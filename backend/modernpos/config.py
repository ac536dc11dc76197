# backend/modernpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/modernpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///modernpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a writer waits on the SQLite lock before giving up
    SQLITE_BUSY_TIMEOUT_SECONDS = float(os.environ.get("SQLITE_BUSY_TIMEOUT_SECONDS", "15"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Tenant settings defaults, used until a business stores its own value
    DEFAULT_STORE_NAME = os.environ.get("POS_DEFAULT_STORE_NAME", "ModernPOS Store")
    DEFAULT_CURRENCY = os.environ.get("POS_DEFAULT_CURRENCY", "KES")
    DEFAULT_TAX_RATE_PERCENT = os.environ.get("POS_DEFAULT_TAX_RATE", "8")
    DEFAULT_LOW_STOCK_THRESHOLD = int(os.environ.get("POS_LOW_STOCK_THRESHOLD", "10"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"

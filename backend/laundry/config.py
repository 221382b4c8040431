# backend/laundry/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/laundry.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location (e.g. postgresql://...)
        "sqlite:///laundry.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Invoice numbers are <outlet prefix><zero-padded counter>, e.g. BD0001
    INVOICE_NUMBER_PAD = int(os.environ.get("INVOICE_NUMBER_PAD", "4"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))
    SESSION_IDLE_MINUTES = int(os.environ.get("SESSION_IDLE_MINUTES", "120"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

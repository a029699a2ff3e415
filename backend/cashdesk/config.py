# Overview: Environment-driven settings loaded by create_app.
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Any SQLAlchemy URL; the one-open-shift index needs SQLite or PostgreSQL
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///cashdesk.sqlite3")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Basis points applied to the cart subtotal
    TAX_RATE_BPS = int(os.environ.get("TAX_RATE_BPS", "700"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# backend/stockflow/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockflow.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Compare-on-write conflicts re-run the whole unit of work this many times
    STORE_RETRY_ATTEMPTS = int(os.environ.get("STORE_RETRY_ATTEMPTS", "3"))
    STORE_RETRY_BACKOFF = float(os.environ.get("STORE_RETRY_BACKOFF", "0.1"))

    # Location debited by shrinkage that names no owner
    SHRINKAGE_FALLBACK_LOCATION = os.environ.get("SHRINKAGE_FALLBACK_LOCATION", "ALMACEN")

    # Comma-separated browser origins allowed to call the API; empty disables CORS
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
    ]


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORE_RETRY_BACKOFF = 0.0
    LOG_LEVEL = "WARNING"
    CORS_ORIGINS = ["http://frontend.test"]

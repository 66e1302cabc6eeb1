# backend/app/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/traveldesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///traveldesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Identity is asserted by the upstream gateway; we only read the header.
    ACTOR_HEADER = os.environ.get("ACTOR_HEADER", "X-User-Id")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    DEFAULT_ANNUAL_TRAVEL_BUDGET = float(os.environ.get("DEFAULT_ANNUAL_TRAVEL_BUDGET", "15000"))
    DEFAULT_PROJECT_TRAVEL_BUDGET = float(os.environ.get("DEFAULT_PROJECT_TRAVEL_BUDGET", "50000"))
    DOCUMENT_EXPIRY_WARNING_DAYS = 30

    # When true, only the assigned regional team may complete a request
    ENFORCE_OPERATIONS_REGION = _env_bool("ENFORCE_OPERATIONS_REGION", False)

    # External roster provider (Zoho People / Projects)
    ROSTER_API_BASE_URL = os.environ.get("ROSTER_API_BASE_URL", "https://projectsapi.zoho.com")
    ROSTER_AUTH_URL = os.environ.get("ROSTER_AUTH_URL", "https://accounts.zoho.com/oauth/v2/token")
    ROSTER_CLIENT_ID = os.environ.get("ROSTER_CLIENT_ID")
    ROSTER_CLIENT_SECRET = os.environ.get("ROSTER_CLIENT_SECRET")
    ROSTER_REFRESH_TOKEN = os.environ.get("ROSTER_REFRESH_TOKEN")
    ROSTER_PORTAL_ID = os.environ.get("ROSTER_PORTAL_ID")
    ROSTER_TIMEOUT_SECONDS = float(os.environ.get("ROSTER_TIMEOUT_SECONDS", "15"))

    # Outgoing mail for request notifications; unset MAIL_SERVER disables sending
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)

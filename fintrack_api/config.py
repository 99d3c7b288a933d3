# fintrack_api/config.py

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    """Settings read from the environment (and .env when present)."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-me")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-key-change-me")

    # ---------------- Token lifetimes ----------------
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.environ.get("JWT_EXPIRES_DAYS", 30)))
    EMAIL_VERIFICATION_TTL = timedelta(hours=24)
    PASSWORD_RESET_TTL = timedelta(hours=1)

    DB_PATH = os.environ.get("DB_PATH", os.path.join(BASE_DIR, "..", "data", "fintrack.db"))

    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS", "http://localhost:8081,http://localhost:8082"
    )
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:8081")

    # ---------------- Email ----------------
    SMTP_HOST = os.environ.get("SMTP_HOST", "")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", 587))
    SMTP_USER = os.environ.get("SMTP_USER", "")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD", "")
    EMAIL_FROM = os.environ.get("EMAIL_FROM", "FinTrack <no-reply@fintrack.local>")

    ENV_NAME = os.environ.get("APP_ENV", "development")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

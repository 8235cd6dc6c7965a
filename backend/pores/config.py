# backend/pores/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pores.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pores.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # HMAC key for store/keeper tokens. Tokens issued under one secret
    # are rejected after the secret changes.
    AUTH_SECRET = (
        os.environ.get("AUTH_SECRET")
        or os.environ.get("DATABASE_URL")
        or "pores-pos-secret"
    )
    STORE_TOKEN_TTL_SECONDS = _int_env("STORE_TOKEN_TTL_SECONDS", 24 * 60 * 60)
    KEEPER_TOKEN_TTL_SECONDS = _int_env("KEEPER_TOKEN_TTL_SECONDS", 60 * 60)
    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 10)

    # Admin panel endpoints are disabled (403) while this is unset
    ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY")

    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 5)
    ADMIN_LOW_STOCK_THRESHOLD = _int_env("ADMIN_LOW_STOCK_THRESHOLD", 10)
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "NGN")

    CORS_ALLOWED_ORIGINS = os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:3001,http://127.0.0.1:3001",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

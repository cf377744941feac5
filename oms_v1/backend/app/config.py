import os
from datetime import timedelta


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///oms.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=_int_env("JWT_ACCESS_TOKEN_MINUTES", 60))

    REDIS_URL = os.getenv("REDIS_URL", "")
    CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "oms")

    ORDER_TRACKING_LIST_TTL = _int_env("ORDER_TRACKING_LIST_TTL", 300)
    ORDER_TRACKING_SUMMARY_TTL = _int_env("ORDER_TRACKING_SUMMARY_TTL", 180)
    ORDER_TRACKING_DETAIL_TTL = _int_env("ORDER_TRACKING_DETAIL_TTL", 60)
    ORDER_TRACKING_EXPORT_LIMIT = _int_env("ORDER_TRACKING_EXPORT_LIMIT", 10000)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

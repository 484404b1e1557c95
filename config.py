"""Application configuration objects."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Type

from sqlalchemy.pool import NullPool


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class BaseConfig:
    """Shared defaults across all environments."""

    APP_NAME = "Answer Site"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite+pysqlite:///answer_site.db",
    )
    AI_API_KEY = os.getenv("OPENROUTER_API_KEY") or os.getenv("AI_API_KEY", "")
    AI_API_BASE = os.getenv(
        "OPENROUTER_BASE_URL", os.getenv("AI_API_BASE", "https://openrouter.ai/api/v1")
    )
    AI_MODEL_NAME = os.getenv("OPENROUTER_MODEL", os.getenv("AI_MODEL_NAME", "openrouter/auto"))
    AI_QUICK_MODEL = os.getenv("AI_QUICK_MODEL", "openai/gpt-4o-mini")
    AI_VISION_MODEL = os.getenv("OPENROUTER_VISION_MODEL") or AI_MODEL_NAME
    AI_SITE_URL = os.getenv("OPENROUTER_SITE_URL", "https://answer-site.netlify.app")
    AI_APP_TITLE = os.getenv("OPENROUTER_TITLE", "answer-site")
    AI_API_MAX_RETRIES = int(os.getenv("AI_API_MAX_RETRIES", "3"))
    AI_API_RETRY_BACKOFF = float(os.getenv("AI_API_RETRY_BACKOFF", "2.0"))
    AI_CONNECT_TIMEOUT_SEC = int(os.getenv("AI_CONNECT_TIMEOUT_SEC", "15"))
    AI_READ_TIMEOUT_SEC = int(os.getenv("AI_READ_TIMEOUT_SEC", "60"))
    AI_RAW_PREVIEW_CHARS = int(os.getenv("AI_RAW_PREVIEW_CHARS", "600"))
    SOLVE_TIMEOUT_SEC = int(os.getenv("SOLVE_TIMEOUT_SEC", "300"))
    SOLVE_PRIMARY_BUDGET = int(os.getenv("SOLVE_PRIMARY_BUDGET", "8000"))
    SOLVE_FALLBACK_BUDGET = int(os.getenv("SOLVE_FALLBACK_BUDGET", "4200"))
    SOLVE_DEBUG_MAX_CHARS = int(os.getenv("SOLVE_DEBUG_MAX_CHARS", "600"))
    SOLVE_TEMPERATURE = float(os.getenv("SOLVE_TEMPERATURE", "0.4"))
    SOLVE_MAX_TOKENS = int(os.getenv("SOLVE_MAX_TOKENS", "2600"))
    SOLVE_SECTION_MARKERS = tuple(
        marker.strip()
        for marker in os.getenv("SOLVE_SECTION_MARKERS", "[문제 1];[문제 2]").split(";")
        if marker.strip()
    )
    SOLVE_JOBS_SYNC = _env_flag("SOLVE_JOBS_SYNC")
    JOB_STORE_BACKEND = os.getenv("JOB_STORE_BACKEND", "firebase")
    FIREBASE_DB_URL = os.getenv(
        "FIREBASE_DB_URL",
        "https://answer-site-p2p-default-rtdb.asia-southeast1.firebasedatabase.app",
    )
    FIREBASE_JOBS_PATH = os.getenv("FIREBASE_JOBS_PATH", "p2p/jobs")
    FIREBASE_AUTH_TOKEN = os.getenv("FIREBASE_AUTH_TOKEN", "")
    JOB_STORE_TIMEOUT_SEC = int(os.getenv("JOB_STORE_TIMEOUT_SEC", "10"))
    OCR_API_KEY = os.getenv("OCRSPACE_API_KEY") or os.getenv("OCR_API_KEY", "")
    OCR_API_URL = os.getenv("OCR_API_URL", "https://apipro1.ocr.space/parse/image")
    OCR_DEFAULT_LANGUAGE = os.getenv("OCR_DEFAULT_LANGUAGE", "kor+eng")
    OCR_ENGINE = os.getenv("OCR_ENGINE", "3")
    OCR_TIMEOUT_SEC = int(os.getenv("OCR_TIMEOUT_SEC", "60"))
    UNDERLINE_TIMEOUT_SEC = int(os.getenv("UNDERLINE_TIMEOUT_SEC", "25"))
    GENERATION_LOG_TO_FILE = _env_flag("GENERATION_LOG_TO_FILE", "true")
    STOP_TOKEN = os.getenv("STOP_TOKEN", "ABCDEFGH")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    RATE_LIMIT_DEFAULTS = [limit.strip() for limit in os.getenv("RATE_LIMIT_DEFAULTS", "200 per minute;1000 per day").split(";") if limit.strip()]
    SOLVE_JOB_RATE_LIMIT = os.getenv("SOLVE_JOB_RATE_LIMIT", "20 per minute")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    JSON_SORT_KEYS = False
    SQLITE_TIMEOUT_SEC = int(os.getenv("SQLITE_TIMEOUT_SEC", "15"))
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "poolclass": NullPool,
            "connect_args": {"timeout": SQLITE_TIMEOUT_SEC, "check_same_thread": False},
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_pre_ping": True,
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        }


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    # Let Flask-SQLAlchemy share one connection for the in-memory database.
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, Any] = {}
    AI_API_KEY = "test-key"
    AI_API_MAX_RETRIES = 1
    AI_API_RETRY_BACKOFF = 0.0
    OCR_API_KEY = "test-ocr-key"
    JOB_STORE_BACKEND = "memory"
    SOLVE_JOBS_SYNC = True
    GENERATION_LOG_TO_FILE = False
    RATE_LIMIT_DEFAULTS: list[str] = []
    SOLVE_JOB_RATE_LIMIT = "1000 per minute"


CONFIG_ALIASES: dict[str, Type[BaseConfig]] = {
    "dev": DevConfig,
    "development": DevConfig,
    "prod": ProdConfig,
    "production": ProdConfig,
    "test": TestConfig,
    "testing": TestConfig,
}


@lru_cache
def resolve_config(name_or_class: Any) -> Any:
    """Resolve config argument to the object expected by `app.config.from_object`."""

    if name_or_class is None:
        return DevConfig
    if isinstance(name_or_class, str):
        return CONFIG_ALIASES.get(name_or_class, name_or_class)
    return name_or_class

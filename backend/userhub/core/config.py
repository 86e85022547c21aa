"""Application configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Optional


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _database_url_from_parts() -> str:
    """DATABASE_URL if set, else a PostgreSQL URL built from the DB_* variables."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("DB_HOST")
    if not host:
        return "sqlite:///userhub.db"
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    port = os.getenv("DB_PORT", "5432")
    database = os.getenv("DB_DATABASE", "postgres")
    credentials = f"{user}:{password}" if password else user
    return f"postgresql+psycopg://{credentials}@{host}:{port}/{database}"


@dataclass(frozen=True)
class Settings:
    app_name: str = "UserHub API"
    version: str = "1.0.0"
    api_prefix: str = "/api/users"
    graphql_path: str = "/graphql"
    host: str = field(default_factory=lambda: _env("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3001))
    cors_allow_origins: str = field(default_factory=lambda: _env("USERHUB_CORS_ORIGINS", "*"))

    # "memory" or "sql"
    storage: str = field(default_factory=lambda: _env("USERHUB_STORAGE", "memory"))
    database_url: str = field(default_factory=_database_url_from_parts)
    db_schema: Optional[str] = field(default_factory=lambda: os.getenv("DB_SCHEMA") or None)
    db_pool_size: int = field(default_factory=lambda: _env_int("USERHUB_DB_POOL_SIZE", 5))
    db_max_overflow: int = field(default_factory=lambda: _env_int("USERHUB_DB_MAX_OVERFLOW", 10))

    display_timezone: str = field(default_factory=lambda: _env("USERHUB_DISPLAY_TZ", "Asia/Ho_Chi_Minh"))
    log_level: str = field(default_factory=lambda: _env("USERHUB_LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _env("USERHUB_LOG_FORMAT", "text"))

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


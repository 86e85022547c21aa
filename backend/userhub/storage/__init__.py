"""Storage backends, selected by `Settings.storage`."""

from __future__ import annotations

from userhub.core.config import Settings
from userhub.storage.base import SearchCriteria, UserGateway, UserStore
from userhub.storage.memory import MemoryUserStore
from userhub.storage.sql import SqlUserStore

__all__ = ["MemoryUserStore", "SearchCriteria", "SqlUserStore", "UserGateway", "UserStore", "build_store"]


def build_store(settings: Settings) -> UserStore:
    if settings.storage == "memory":
        return MemoryUserStore()
    if settings.storage in ("sql", "postgres", "postgresql"):
        return SqlUserStore.from_url(
            settings.database_url,
            schema=settings.db_schema,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage!r} (expected 'memory' or 'sql')")

"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from userhub.core.config import Settings
from userhub.main import create_app
from userhub.services.user_service import UserService
from userhub.storage import MemoryUserStore, SqlUserStore


def make_sql_store() -> SqlUserStore:
    """SQL backend on a single shared in-memory SQLite connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlUserStore(engine)
    store.startup()
    return store


def make_store(kind: str):
    return MemoryUserStore() if kind == "memory" else make_sql_store()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    store = make_store(request.param)
    yield store
    store.shutdown()


@pytest.fixture
def service(store):
    return UserService(store, "Asia/Ho_Chi_Minh")


@pytest.fixture
def memory_service():
    return UserService(MemoryUserStore(), "Asia/Ho_Chi_Minh")


def _client(store):
    settings = Settings(storage=store.name, log_level="WARNING")
    app = create_app(settings, store)
    return TestClient(app)


@pytest.fixture
def client():
    """REST/GraphQL client over the in-memory backend."""
    with _client(MemoryUserStore()) as c:
        yield c


@pytest.fixture
def sql_client():
    with _client(make_sql_store()) as c:
        yield c


@pytest.fixture(params=["memory", "sql"])
def any_client(request):
    with _client(make_store(request.param)) as c:
        yield c

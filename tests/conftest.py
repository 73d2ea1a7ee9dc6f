# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import UTC, datetime, timedelta

import pytest

# Set test environment before any trashcan module reads settings
os.environ.setdefault("TESTING", "1")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TRASHCAN_STORE_PROVIDER"] = "memory"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["LOG_JSON"] = "false"

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from trashcan.config import get_settings  # noqa: E402
from trashcan.constants import StoreRefs  # noqa: E402
from trashcan.database import init_db  # noqa: E402
from trashcan.store import InMemoryNodeStore, reset_node_store  # noqa: E402
from trashcan.store.sql_provider import SqlNodeStore  # noqa: E402

ADMIN_KEY = "test-admin-key"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def memory_store():
    """In-memory store with an empty archive store."""
    store = InMemoryNodeStore()
    store.ensure_store(StoreRefs.ARCHIVE)
    return store


@pytest.fixture
def sql_store():
    """SQL store on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    store = SqlNodeStore(session_factory=sessionmaker(bind=engine, autoflush=False, future=True))
    store.ensure_store(StoreRefs.ARCHIVE)
    yield store
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Run the test against both store providers."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop cached settings and the node store singleton after each test."""
    yield
    reset_node_store()
    get_settings.cache_clear()

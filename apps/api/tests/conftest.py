"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database (shared through StaticPool).
Every test gets freshly created tables, which are dropped afterwards, so
nothing leaks between tests.

Redis is disabled by default (get_redis_client -> None) and the Celery
broker is treated as unreachable, so intraday events are written inline.
Tests that need Redis use the ``fake_redis`` fixture.
"""
import os
import sys
from datetime import datetime, timezone
from uuid import uuid4

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-cognitive-metrics-0123456789")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine  # noqa: E402
import models  # noqa: E402,F401
from models import User  # noqa: E402


REDIS_CLIENT_LOOKUPS = (
    "core.cache.get_redis_client",
    "services.intraday_events.get_redis_client",
    "tasks.metric_tasks.get_redis_client",
)


class FakeRedis:
    """Minimal in-memory Redis mock for unit tests."""

    def __init__(self):
        self._store: dict = {}
        self._ttls: dict = {}

    def get(self, key):
        return self._store.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self._store:
            return False
        self._store[key] = value
        if ex:
            self._ttls[key] = ex
        return True

    def setex(self, key, ttl, value):
        self._store[key] = value
        self._ttls[key] = ttl

    def delete(self, *keys):
        for k in keys:
            self._store.pop(k, None)
            self._ttls.pop(k, None)

    def exists(self, key):
        return key in self._store

    def ping(self):
        return True


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    for target in REDIS_CLIENT_LOOKUPS:
        monkeypatch.setattr(target, lambda: None)


@pytest.fixture(autouse=True)
def _broker_unavailable(monkeypatch):
    """Enqueueing fails as if the broker were down; events are written inline."""
    def _raise(*args, **kwargs):
        raise ConnectionError("broker unavailable")

    monkeypatch.setattr("tasks.metric_tasks.record_intraday_event_task.delay", _raise)
    monkeypatch.setattr("tasks.metric_tasks.refresh_cognitive_metrics_task.delay", _raise)


@pytest.fixture
def fake_redis(monkeypatch):
    """Provide a FakeRedis and patch every get_redis_client lookup to return it."""
    r = FakeRedis()
    for target in REDIS_CLIENT_LOOKUPS:
        monkeypatch.setattr(target, lambda: r)
    return r


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test; dropped afterwards."""
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def make_user(db_session):
    """Factory for committed users. created_at anchors Reasoning Quality decay."""
    def _make(**overrides):
        values = {
            "email": f"test_{uuid4()}@example.com",
            "display_name": "Test User",
            "training_plan": "expert",
            "timezone": "UTC",
            "created_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def test_user(make_user):
    return make_user()

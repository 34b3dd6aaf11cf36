from __future__ import annotations

import datetime

import pytest

from visitor_desk.config import Settings
from visitor_desk.database import build_engine, build_session_factory, create_tables
from visitor_desk.services import VisitorDesk
from visitor_desk.store import MemoryRecordStore, SqlRecordStore, StoreResult

# 12:00 local time in Europe/Berlin (CEST)
NOW = datetime.datetime(2026, 10, 18, 10, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    def __init__(self, now: datetime.datetime):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def set(self, now: datetime.datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now += datetime.timedelta(**kwargs)


class FailingStore:
    """Store whose every call reports a backend failure."""

    def __init__(self, error: str = "connection refused"):
        self.error = error

    def fetch_all(self, table, filters=None, order_by=None, descending=False, limit=None, offset=0, at_least=None):
        return StoreResult.fail(self.error)

    def insert_one(self, table, values):
        return StoreResult.fail(self.error)

    def update_by_id(self, table, record_id, values, expected=None):
        return StoreResult.fail(self.error)

    def delete_by_id(self, table, record_id):
        return StoreResult.fail(self.error)


def sqlite_store() -> SqlRecordStore:
    engine = build_engine("sqlite://")
    create_tables(engine)
    return SqlRecordStore(build_session_factory(engine))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        return MemoryRecordStore()
    return sqlite_store()


@pytest.fixture
def desk(store, clock) -> VisitorDesk:
    return VisitorDesk(store, default_timezone="Europe/Berlin", clock=clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=None,
        POSTGRES_USER=None,
        POSTGRES_DB=None,
        ENABLE_SCHEDULER=False,
        DISPLAY_REFRESH_SECONDS=30,
    )

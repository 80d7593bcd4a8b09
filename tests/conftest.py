"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file in a temporary directory with the schema
already created. Async code is driven with asyncio.run() from synchronous tests.
"""
import asyncio
import os
import shutil
import tempfile
from datetime import datetime, timedelta, UTC

import pytest

from betterdoit.config import Settings
from betterdoit.db_adapter import SQLiteAdapter
from betterdoit.storage import NotificationSettingRepository, SchemaManager, TaskRepository


class FakeClock:
    """Deterministic clock; each call advances by ``step`` so creation order is unambiguous."""

    def __init__(self, start: datetime = datetime(2024, 1, 3, 12, 0, tzinfo=UTC), step=timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


def run(coro):
    """Run a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test databases."""
    path = tempfile.mkdtemp(prefix="betterdoit_test_")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def temp_db_path(temp_dir):
    return os.path.join(temp_dir, "test.db")


@pytest.fixture
def settings(temp_db_path):
    """Settings pointing at the temporary database, with secrets for auth tests."""
    return Settings(
        db_type="sqlite",
        database_path=temp_db_path,
        cron_secret_token="cron-secret",
        session_secret="session-secret",
        sms_backend="log",
        reminder_timezone="UTC",
        max_active_tasks=3,
    )


@pytest.fixture
def adapter(temp_db_path):
    """Connected SQLite adapter with the schema initialized."""
    db = SQLiteAdapter(temp_db_path)
    run(db.connect())
    run(SchemaManager(db).initialize_schema())
    yield db
    run(db.close())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def task_repo(adapter, clock):
    return TaskRepository(adapter, now=clock)


@pytest.fixture
def notification_repo(adapter):
    return NotificationSettingRepository(adapter)

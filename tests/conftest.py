"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp DB, a fake clock and a
recording notifier.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "Europe/Moscow")
os.environ.setdefault("CALENDAR_PROVIDER", "none")

from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

TZ = ZoneInfo("Europe/Moscow")


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture
def clock():
    """A FakeClock starting at 2026-03-02 07:00 Moscow time."""
    return FakeClock(datetime(2026, 3, 2, 7, 0, tzinfo=TZ))


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_gtd.db")


@pytest.fixture
def item_db(tmp_db_path):
    """Return an ItemDB instance backed by a temp file."""
    from src.data.db import ItemDB
    return ItemDB(db_path=tmp_db_path)


@pytest.fixture
def notifier():
    """AsyncMock notifier; send_message returns increasing message IDs."""
    mock = AsyncMock()
    counter = iter(range(100, 10_000))
    mock.send_message = AsyncMock(side_effect=lambda *a, **kw: next(counter))
    return mock


@pytest.fixture
def target_chat(item_db):
    """TargetChat pinned to chat 42."""
    from src.core.target_chat import TargetChat
    return TargetChat(item_db, configured_chat_id=42)

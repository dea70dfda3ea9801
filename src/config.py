"""
GTD Assistant — Centralized configuration.

Loads all settings from .env and validates them at startup.
A bad token, timezone or schedule time aborts the process before the bot
ever connects to Telegram.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


def _normalize_hhmm(value: str) -> str:
    """Return a zero-padded HH:MM string or raise ValueError."""
    parsed = datetime.strptime(value.strip(), "%H:%M")
    return parsed.strftime("%H:%M")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/gtd.db"

    # Time handling
    TIMEZONE: str = "Europe/Moscow"
    TOPIC_TTL_MINUTES: int = 10

    # Daily triggers, all HH:MM in TIMEZONE
    REMINDER_TIMES: list[str] = ["08:00", "10:00", "14:00", "19:00", "23:00"]
    MORNING_DIGEST_TIME: str = "08:00"
    NIGHTLY_WIPE_TIME: str = "03:00"
    SCHEDULER_POLL_SECONDS: float = 15.0

    # Chat that receives scheduler messages; learned from traffic when unset
    CHAT_ID: int | None = None

    # Security (empty list = anyone may talk to the bot)
    ALLOWED_USER_IDS: list[int] = []

    # Calendar provider: "none" | "google" | "caldav"
    CALENDAR_PROVIDER: str = "none"

    # Google Calendar (only needed when CALENDAR_PROVIDER=google)
    GOOGLE_CREDENTIALS_PATH: str = "credentials.json"
    GOOGLE_TOKEN_PATH: str = "token.json"
    GOOGLE_CALENDAR_ID: str = "primary"

    # CalDAV (only needed when CALENDAR_PROVIDER=caldav)
    CALDAV_URL: str = ""
    CALDAV_USERNAME: str = ""
    CALDAV_PASSWORD: str = ""
    CALDAV_CALENDAR_NAME: str = ""

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"invalid time zone {v!r}") from exc
        return v

    @field_validator("REMINDER_TIMES", mode="before")
    @classmethod
    def parse_reminder_times(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            v = [t for t in v.split(",") if t.strip()]
        return [_normalize_hhmm(t) for t in v]

    @field_validator("MORNING_DIGEST_TIME", "NIGHTLY_WIPE_TIME")
    @classmethod
    def parse_time_of_day(cls, v: str) -> str:
        return _normalize_hhmm(v)

    @field_validator("TOPIC_TTL_MINUTES", mode="before")
    @classmethod
    def parse_ttl(cls, v: str | int) -> int:
        minutes = int(v)
        if minutes <= 0:
            raise ValueError("TOPIC_TTL_MINUTES must be positive")
        return minutes

    @field_validator("SCHEDULER_POLL_SECONDS", mode="before")
    @classmethod
    def parse_poll_interval(cls, v: str | float) -> float:
        seconds = float(v)
        # Each HH:MM window must be observed at least once.
        if not 0 < seconds < 60:
            raise ValueError("SCHEDULER_POLL_SECONDS must be between 0 and 60")
        return seconds

    @field_validator("CHAT_ID", mode="before")
    @classmethod
    def parse_chat_id(cls, v: str | int | None) -> int | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return int(v)

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    try:
        return Settings(
            TELEGRAM_BOT_TOKEN=token,
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/gtd.db"),
            TIMEZONE=os.getenv("TIMEZONE", "Europe/Moscow"),
            TOPIC_TTL_MINUTES=os.getenv("TOPIC_TTL_MINUTES", "10"),
            REMINDER_TIMES=os.getenv("REMINDER_TIMES", "08:00,10:00,14:00,19:00,23:00"),
            MORNING_DIGEST_TIME=os.getenv("MORNING_DIGEST_TIME", "08:00"),
            NIGHTLY_WIPE_TIME=os.getenv("NIGHTLY_WIPE_TIME", "03:00"),
            SCHEDULER_POLL_SECONDS=os.getenv("SCHEDULER_POLL_SECONDS", "15"),
            CHAT_ID=os.getenv("CHAT_ID", ""),
            ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
            CALENDAR_PROVIDER=os.getenv("CALENDAR_PROVIDER", "none"),
            GOOGLE_CREDENTIALS_PATH=os.getenv("GOOGLE_CREDENTIALS_PATH", "credentials.json"),
            GOOGLE_TOKEN_PATH=os.getenv("GOOGLE_TOKEN_PATH", "token.json"),
            GOOGLE_CALENDAR_ID=os.getenv("GOOGLE_CALENDAR_ID", "primary"),
            CALDAV_URL=os.getenv("CALDAV_URL", ""),
            CALDAV_USERNAME=os.getenv("CALDAV_USERNAME", ""),
            CALDAV_PASSWORD=os.getenv("CALDAV_PASSWORD", ""),
            CALDAV_CALENDAR_NAME=os.getenv("CALDAV_CALENDAR_NAME", ""),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()

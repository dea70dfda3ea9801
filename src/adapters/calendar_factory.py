"""Calendar adapter factory — creates the right adapter based on config."""

from __future__ import annotations

from datetime import datetime

from src.config import settings
from src.ports.calendar_port import CalendarPort


class DisabledCalendar:
    """CalendarPort used when no provider is configured.

    The digest still goes out, telling the user how to enable it.
    """

    async def get_today_agenda(self, now: datetime) -> str:
        return "Calendar is not configured (set CALENDAR_PROVIDER to google or caldav)."


def create_calendar_adapter() -> CalendarPort:
    """Return the calendar adapter matching CALENDAR_PROVIDER setting."""
    provider = settings.CALENDAR_PROVIDER.strip().lower()

    if provider in ("", "none"):
        return DisabledCalendar()

    if provider == "google":
        from src.adapters.google_calendar import GoogleCalendarAdapter

        return GoogleCalendarAdapter(calendar_id=settings.GOOGLE_CALENDAR_ID)

    if provider == "caldav":
        from src.adapters.caldav_calendar import CalDAVCalendarAdapter

        return CalDAVCalendarAdapter()

    raise ValueError(f"Unknown CALENDAR_PROVIDER: {provider!r}")

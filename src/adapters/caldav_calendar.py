"""CalDAV calendar adapter — implements CalendarPort for CalDAV servers.

Supports iCloud, Nextcloud, Fastmail, and any CalDAV-compliant server.
Uses the caldav library (sync) wrapped with asyncio.to_thread for async
compatibility.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

import caldav
from icalendar import Calendar as iCalendar

from src.config import settings
from src.core.formatting import format_agenda
from src.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


def _get_calendar() -> caldav.Calendar:
    """Connect to CalDAV server and return the configured calendar."""
    client = caldav.DAVClient(
        url=settings.CALDAV_URL,
        username=settings.CALDAV_USERNAME,
        password=settings.CALDAV_PASSWORD,
    )
    calendars = client.principal().calendars()

    if not calendars:
        raise CalendarError("No calendars found on the CalDAV server.")

    if settings.CALDAV_CALENDAR_NAME:
        for cal in calendars:
            if cal.name == settings.CALDAV_CALENDAR_NAME:
                return cal
        raise CalendarError(
            f"Calendar '{settings.CALDAV_CALENDAR_NAME}' not found. "
            f"Available: {[c.name for c in calendars]}"
        )

    return calendars[0]


def _parse_vevent(event_data: caldav.Event) -> dict | None:
    """Parse a CalDAV event into the agenda dict format, or None if unreadable."""
    try:
        cal = iCalendar.from_ical(event_data.data)
    except Exception as exc:
        logger.warning("Skipping unparsable CalDAV event: %s", exc)
        return None

    for component in cal.walk("VEVENT"):
        dtstart = component.get("dtstart")
        dtend = component.get("dtend")
        return {
            "id": str(component.get("uid", "")),
            "summary": str(component.get("summary", "(no title)")),
            "start_time": dtstart.dt.isoformat() if dtstart else "",
            "end_time": dtend.dt.isoformat() if dtend else "",
        }
    return None


class CalDAVCalendarAdapter:
    """CalDAV implementation of CalendarPort."""

    async def list_events(self, now: datetime) -> list[dict]:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)

        try:
            cal = await asyncio.to_thread(_get_calendar)
            results = await asyncio.to_thread(
                cal.search, start=start, end=end, event=True, expand=True
            )
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (list_events): %s", exc)
            raise CalendarError(f"Failed to fetch events: {exc}") from exc

        events = [ev for ev in (_parse_vevent(r) for r in results) if ev is not None]
        events.sort(key=lambda ev: ev["start_time"])
        logger.info("Found %d CalDAV event(s) on %s", len(events), start.date().isoformat())
        return events

    async def get_today_agenda(self, now: datetime) -> str:
        return format_agenda(await self.list_events(now))

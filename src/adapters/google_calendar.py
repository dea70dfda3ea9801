"""Google Calendar adapter — implements CalendarPort for Google Calendar API.

All Google-specific logic lives here. Core modules never import this directly;
they depend on the CalendarPort protocol.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from src.core.formatting import format_agenda
from src.integrations.google_auth import get_calendar_service
from src.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


def _day_bounds(now: datetime) -> tuple[str, str]:
    """RFC 3339 start/end of `now`'s local day."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start.isoformat(), end.isoformat()


def _parse_item(item: dict) -> dict:
    start = item.get("start", {})
    end = item.get("end", {})
    return {
        "id": item.get("id", ""),
        "summary": item.get("summary", "(no title)"),
        "start_time": start.get("dateTime", start.get("date", "")),
        "end_time": end.get("dateTime", end.get("date", "")),
    }


class GoogleCalendarAdapter:
    """Google Calendar implementation of CalendarPort."""

    def __init__(self, calendar_id: str = "primary") -> None:
        self._calendar_id = calendar_id

    async def list_events(self, now: datetime) -> list[dict]:
        time_min, time_max = _day_bounds(now)
        try:
            service = await asyncio.to_thread(get_calendar_service)
            request = service.events().list(
                calendarId=self._calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
            )
            result = await asyncio.to_thread(request.execute)
        except Exception as exc:
            logger.error("Google Calendar API error: %s", exc)
            raise CalendarError(f"Failed to fetch events: {exc}") from exc

        events = [_parse_item(item) for item in result.get("items", [])]
        logger.info("Found %d Google event(s) on %s", len(events), now.date().isoformat())
        return events

    async def get_today_agenda(self, now: datetime) -> str:
        return format_agenda(await self.list_events(now))

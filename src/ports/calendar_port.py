"""Calendar port — abstract interface for the daily agenda source.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class CalendarError(Exception):
    """Raised when any calendar provider operation fails."""


class CalendarPort(Protocol):
    """Abstract calendar interface used by core modules."""

    async def get_today_agenda(self, now: datetime) -> str: ...

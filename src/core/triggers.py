"""
GTD Assistant — Daily Trigger Scheduler.

Fires fixed-time actions (reminder broadcasts, morning digest, nightly
wipe) at most once per calendar day each.

A trigger is keyed by (kind, HH:MM). On every poll the scheduler compares
the local HH:MM of `now` with each trigger and fires it if the trigger
hasn't fired yet on `now`'s date. The firing record is committed before
the action runs, so a failed action is not retried the same day. A poll
that misses the matching minute entirely skips that day's firing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Awaitable, Callable, Iterable

from src.core.session import Clock

logger = logging.getLogger(__name__)

TriggerAction = Callable[[datetime], Awaitable[object]]


class TriggerKind(str, Enum):
    MORNING_DIGEST = "morning"
    REMINDERS = "reminders"
    NIGHTLY_WIPE = "wipe"


@dataclass(frozen=True)
class Trigger:
    kind: TriggerKind
    time_of_day: str  # "HH:MM" in the scheduler's local zone
    action: TriggerAction = field(compare=False, repr=False)

    @property
    def key(self) -> tuple[TriggerKind, str]:
        return (self.kind, self.time_of_day)


class DailyTriggerScheduler:
    """Polls the clock and runs each trigger's action once per day."""

    def __init__(
        self,
        triggers: Iterable[Trigger],
        clock: Clock,
        poll_interval_seconds: float = 15.0,
    ) -> None:
        self._triggers = list(triggers)
        self._clock = clock
        self._poll_interval_seconds = poll_interval_seconds
        self._last_fired: dict[tuple[TriggerKind, str], date] = {}
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def triggers(self) -> list[Trigger]:
        return list(self._triggers)

    def last_fired(self, kind: TriggerKind, time_of_day: str) -> date | None:
        return self._last_fired.get((kind, time_of_day))

    def _claim_due(self, now: datetime) -> list[Trigger]:
        """Return triggers newly crossed at `now`, recording them as fired."""
        hhmm = now.strftime("%H:%M")
        today = now.date()
        due = []
        for trigger in self._triggers:
            if trigger.time_of_day != hhmm:
                continue
            if self._last_fired.get(trigger.key) == today:
                continue
            self._last_fired[trigger.key] = today
            due.append(trigger)
        return due

    async def tick(self, now: datetime) -> list[Trigger]:
        """Evaluate all triggers against `now` and run the newly due ones.

        Action failures are logged and never propagate: the trigger stays
        marked as fired for today.
        """
        fired = self._claim_due(now)
        for trigger in fired:
            logger.info("Trigger %s at %s fired", trigger.kind.value, trigger.time_of_day)
            try:
                await trigger.action(now)
            except Exception as exc:
                logger.error(
                    "Trigger %s at %s failed: %s",
                    trigger.kind.value, trigger.time_of_day, exc,
                )
        return fired

    async def run_forever(self) -> None:
        """Run the poll loop until stop() is called."""
        logger.info(
            "Scheduler started with %d trigger(s), polling every %.1fs",
            len(self._triggers), self._poll_interval_seconds,
        )
        while not self._stop_event.is_set():
            try:
                await self.tick(self._clock())
            except Exception as exc:
                logger.error("Scheduler tick failed: %s", exc)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._poll_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduler stopped")

    def start(self) -> asyncio.Task:
        """Spawn the poll loop as a task on the running event loop."""
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run_forever(), name="daily-triggers")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for an in-flight tick to finish."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

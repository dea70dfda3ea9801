"""Tests for src.core.triggers — once-per-day firing with a simulated clock."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from src.core.triggers import DailyTriggerScheduler, Trigger, TriggerKind

TZ = ZoneInfo("Europe/Moscow")


def _at(day: int, hour: int, minute: int, second: int = 0) -> datetime:
    return datetime(2026, 3, day, hour, minute, second, tzinfo=TZ)


def _scheduler(*triggers: Trigger, clock=None) -> DailyTriggerScheduler:
    return DailyTriggerScheduler(triggers, clock=clock or (lambda: _at(2, 0, 0)))


class TestTick:
    @pytest.mark.asyncio
    async def test_fires_once_within_matching_minute(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.REMINDERS, "08:00", action))

        for second in range(0, 60, 5):
            await sched.tick(_at(2, 8, 0, second))

        action.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fires_once_however_often_polled_same_day(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.NIGHTLY_WIPE, "03:00", action))

        for _ in range(50):
            await sched.tick(_at(2, 3, 0, 30))
        await sched.tick(_at(2, 12, 0))

        assert action.await_count == 1

    @pytest.mark.asyncio
    async def test_does_not_fire_outside_minute(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.REMINDERS, "08:00", action))

        await sched.tick(_at(2, 7, 59, 59))
        await sched.tick(_at(2, 8, 1))

        action.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missed_minute_is_skipped_not_late(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.REMINDERS, "08:00", action))

        await sched.tick(_at(2, 7, 59, 50))
        await sched.tick(_at(2, 8, 1, 5))   # paused over the whole minute

        action.assert_not_awaited()
        assert sched.last_fired(TriggerKind.REMINDERS, "08:00") is None

    @pytest.mark.asyncio
    async def test_fires_again_next_day(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.MORNING_DIGEST, "08:00", action))

        await sched.tick(_at(2, 8, 0))
        await sched.tick(_at(2, 8, 0, 30))
        await sched.tick(_at(3, 8, 0))
        await sched.tick(_at(3, 8, 0, 45))

        assert action.await_count == 2
        assert sched.last_fired(TriggerKind.MORNING_DIGEST, "08:00") == _at(3, 0, 0).date()

    @pytest.mark.asyncio
    async def test_action_receives_now(self):
        action = AsyncMock()
        sched = _scheduler(Trigger(TriggerKind.REMINDERS, "14:00", action))
        now = _at(2, 14, 0, 12)

        await sched.tick(now)

        action.assert_awaited_once_with(now)

    @pytest.mark.asyncio
    async def test_triggers_keyed_independently(self):
        digest, reminders, wipe = AsyncMock(), AsyncMock(), AsyncMock()
        sched = _scheduler(
            Trigger(TriggerKind.MORNING_DIGEST, "08:00", digest),
            Trigger(TriggerKind.REMINDERS, "08:00", reminders),
            Trigger(TriggerKind.REMINDERS, "10:00", reminders),
            Trigger(TriggerKind.NIGHTLY_WIPE, "03:00", wipe),
        )

        fired = await sched.tick(_at(2, 8, 0))
        assert [t.kind for t in fired] == [TriggerKind.MORNING_DIGEST, TriggerKind.REMINDERS]
        await sched.tick(_at(2, 10, 0))

        digest.assert_awaited_once()
        assert reminders.await_count == 2
        wipe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_action_not_retried_same_day(self):
        action = AsyncMock(side_effect=RuntimeError("network down"))
        sched = _scheduler(Trigger(TriggerKind.REMINDERS, "08:00", action))

        await sched.tick(_at(2, 8, 0))          # does not raise
        await sched.tick(_at(2, 8, 0, 30))

        action.assert_awaited_once()
        assert sched.last_fired(TriggerKind.REMINDERS, "08:00") == _at(2, 0, 0).date()

    @pytest.mark.asyncio
    async def test_failure_does_not_block_other_triggers(self):
        broken = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        sched = _scheduler(
            Trigger(TriggerKind.MORNING_DIGEST, "08:00", broken),
            Trigger(TriggerKind.REMINDERS, "08:00", healthy),
        )

        await sched.tick(_at(2, 8, 0))

        healthy.assert_awaited_once()


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_loop_polls_clock_and_stops(self):
        action = AsyncMock()
        now = {"value": _at(2, 7, 59, 58)}
        sched = DailyTriggerScheduler(
            [Trigger(TriggerKind.REMINDERS, "08:00", action)],
            clock=lambda: now["value"],
            poll_interval_seconds=0.01,
        )

        task = sched.start()
        await asyncio.sleep(0.05)
        now["value"] = _at(2, 8, 0, 1)
        await asyncio.sleep(0.05)
        await sched.stop()

        assert task.done()
        action.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_action(self):
        finished = asyncio.Event()

        async def slow_action(now):
            await asyncio.sleep(0.05)
            finished.set()

        sched = DailyTriggerScheduler(
            [Trigger(TriggerKind.NIGHTLY_WIPE, "03:00", slow_action)],
            clock=lambda: _at(2, 3, 0),
            poll_interval_seconds=0.01,
        )

        sched.start()
        await asyncio.sleep(0.01)
        await sched.stop()

        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_loop_survives_clock_errors(self):
        calls = {"n": 0}

        def flaky_clock():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("clock unavailable")
            return _at(2, 12, 0) + timedelta(seconds=calls["n"])

        sched = DailyTriggerScheduler([], clock=flaky_clock, poll_interval_seconds=0.01)
        task = sched.start()
        await asyncio.sleep(0.05)
        await sched.stop()

        assert calls["n"] > 1
        assert task.exception() is None

"""
GTD Assistant — Daily Jobs.

Reminder broadcast: at each configured time, every active reminder is
re-sent as its own message with a ✅ button.

Morning digest: today's calendar agenda, once a day.

Nightly wipe: reminders are day-scoped nudges, so every active reminder
is swept away at night.

All jobs address the target chat. Without one they log and do nothing.
This module is provider-agnostic: it depends on CalendarPort and
NotificationPort protocols, not on specific implementations.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from src.core.formatting import format_digest, format_reminder, format_wipe_notice
from src.core.triggers import Trigger, TriggerKind
from src.data.db import StorageError
from src.data.models import Topic
from src.ports.calendar_port import CalendarError

if TYPE_CHECKING:
    from src.core.target_chat import TargetChat
    from src.data.db import ItemDB
    from src.ports.calendar_port import CalendarPort
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def _resolve_target(target_chat: TargetChat, job: str) -> int | None:
    try:
        chat_id = target_chat.resolve()
    except StorageError as exc:
        logger.error("%s: couldn't read target chat: %s", job, exc)
        return None
    if chat_id is None:
        logger.warning("%s: no target chat known yet; skipping", job)
    return chat_id


# ---------------------------------------------------------------------------
# Reminder broadcast
# ---------------------------------------------------------------------------


async def send_reminders(
    notifier: NotificationPort,
    store: ItemDB,
    target_chat: TargetChat,
) -> int:
    """Send one message per active reminder. Returns the number sent."""
    chat_id = _resolve_target(target_chat, "Reminder broadcast")
    if chat_id is None:
        return 0

    try:
        items = store.list_active(chat_id, Topic.REMINDERS)
    except StorageError as exc:
        logger.error("Reminder broadcast: couldn't load reminders: %s", exc)
        return 0

    for item in items:
        await notifier.send_message(chat_id, format_reminder(item), done_item_id=item.id)

    if items:
        logger.info("Sent %d reminder(s) to chat %d", len(items), chat_id)
    return len(items)


# ---------------------------------------------------------------------------
# Morning digest
# ---------------------------------------------------------------------------


async def build_agenda(calendar: CalendarPort, now: datetime) -> str:
    """Fetch today's agenda, turning provider failures into visible text."""
    try:
        return await calendar.get_today_agenda(now)
    except CalendarError as exc:
        logger.warning("Agenda fetch failed: %s", exc)
        return f"Calendar error: {exc}"


async def send_morning_digest(
    notifier: NotificationPort,
    calendar: CalendarPort,
    target_chat: TargetChat,
    now: datetime,
) -> bool:
    """Send today's agenda to the target chat. Returns True if sent."""
    chat_id = _resolve_target(target_chat, "Morning digest")
    if chat_id is None:
        return False

    agenda = await build_agenda(calendar, now)
    await notifier.send_message(chat_id, format_digest(agenda))
    logger.info("Morning digest sent to chat %d", chat_id)
    return True


# ---------------------------------------------------------------------------
# Nightly wipe
# ---------------------------------------------------------------------------


async def wipe_reminders(
    notifier: NotificationPort,
    store: ItemDB,
    target_chat: TargetChat,
) -> int | None:
    """Retire every active reminder of the target chat.

    Returns the number of reminders cleared, or None if the wipe was skipped.
    """
    chat_id = _resolve_target(target_chat, "Nightly wipe")
    if chat_id is None:
        return None

    try:
        cleared = store.delete_all_in_topic(chat_id, Topic.REMINDERS)
    except StorageError as exc:
        logger.error("Nightly wipe failed: %s", exc)
        return None

    await notifier.send_message(chat_id, format_wipe_notice(cleared))
    return cleared


# ---------------------------------------------------------------------------
# Trigger wiring
# ---------------------------------------------------------------------------


def build_triggers(
    notifier: NotificationPort,
    store: ItemDB,
    calendar: CalendarPort,
    target_chat: TargetChat,
    reminder_times: list[str] | None = None,
    morning_time: str | None = None,
    wipe_time: str | None = None,
) -> list[Trigger]:
    """Create the daily triggers: digest first, then reminders, then wipe.

    Times default to the values in settings.
    """
    if reminder_times is None or morning_time is None or wipe_time is None:
        from src.config import settings

        reminder_times = settings.REMINDER_TIMES if reminder_times is None else reminder_times
        morning_time = settings.MORNING_DIGEST_TIME if morning_time is None else morning_time
        wipe_time = settings.NIGHTLY_WIPE_TIME if wipe_time is None else wipe_time

    async def _digest(now: datetime) -> None:
        await send_morning_digest(notifier, calendar, target_chat, now)

    async def _reminders(now: datetime) -> None:
        await send_reminders(notifier, store, target_chat)

    async def _wipe(now: datetime) -> None:
        await wipe_reminders(notifier, store, target_chat)

    triggers = [Trigger(TriggerKind.MORNING_DIGEST, morning_time, _digest)]
    # Duplicate reminder times would share one key and fire once anyway.
    for hhmm in dict.fromkeys(reminder_times):
        triggers.append(Trigger(TriggerKind.REMINDERS, hhmm, _reminders))
    triggers.append(Trigger(TriggerKind.NIGHTLY_WIPE, wipe_time, _wipe))
    return triggers

"""
GTD Assistant — Dispatch Coordinator.

Turns one inbound user event (command, topic button, free text, ✅ tap)
into session updates, store writes and outgoing messages.

The coordinator never awaits while holding the session lock: registry
calls return snapshots, and messages go out afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from src.core.formatting import (
    HELP_TEXT,
    MENU_TEXT,
    STORAGE_FAILURE_TEXT,
    format_capture_ack,
    format_digest,
    format_done,
    format_reminder,
    format_topic_header,
    format_topic_list,
    is_menu_label,
    parse_topic_label,
)
from src.core.scheduler import build_agenda
from src.data.db import StorageError
from src.data.models import Topic
from src.ports.notification_port import decode_done

if TYPE_CHECKING:
    from src.core.session import Clock, SessionRegistry
    from src.core.target_chat import TargetChat
    from src.data.db import ItemDB
    from src.ports.calendar_port import CalendarPort
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes chat events through the session registry and item store."""

    def __init__(
        self,
        sessions: SessionRegistry,
        store: ItemDB,
        notifier: NotificationPort,
        target_chat: TargetChat,
        calendar: CalendarPort | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._sessions = sessions
        self._store = store
        self._notifier = notifier
        self._target_chat = target_chat
        self._calendar = calendar
        self._clock = clock

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------

    async def handle_command(self, chat_id: int, command: str) -> None:
        """Handle a slash command (without the leading '/')."""
        self._learn_chat(chat_id)
        command = command.lower()

        if command in ("start", "menu"):
            await self.show_menu(chat_id)
        elif command == "help":
            await self._notifier.send_message(chat_id, HELP_TEXT)
        elif command == "today":
            await self.send_agenda(chat_id)
        else:
            logger.debug("Ignoring unknown command /%s from chat %d", command, chat_id)

    async def handle_text(self, chat_id: int, text: str | None) -> None:
        """Handle a plain text message: menu button, topic button or capture."""
        self._learn_chat(chat_id)
        if text is None or not text.strip():
            return

        if is_menu_label(text):
            await self.show_menu(chat_id)
            return

        topic = parse_topic_label(text)
        if topic is not None:
            await self.switch_topic(chat_id, topic)
            return

        await self.capture(chat_id, text)

    async def handle_done(self, chat_id: int, message_id: int, data: str | None) -> bool:
        """Handle a ✅ tap. Returns True if an active item was completed.

        Unknown, foreign or already-completed IDs are a silent no-op, so a
        duplicate tap is harmless.
        """
        self._learn_chat(chat_id)
        item_id = decode_done(data)
        if item_id is None:
            logger.warning("Malformed done callback %r from chat %d", data, chat_id)
            return False

        try:
            item = self._store.mark_done(chat_id, item_id)
        except StorageError as exc:
            logger.error("Couldn't complete item #%d: %s", item_id, exc)
            await self._notifier.send_message(chat_id, STORAGE_FAILURE_TEXT)
            return False

        if item is None:
            logger.debug("Item #%d not active for chat %d; ignoring", item_id, chat_id)
            return False

        await self._notifier.remove_affordances(chat_id, message_id)
        await self._notifier.edit_message_text(chat_id, message_id, format_done(item))
        return True

    # -----------------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------------

    async def show_menu(self, chat_id: int) -> None:
        self._sessions.reset(chat_id)
        await self._notifier.send_message(chat_id, MENU_TEXT, show_menu=True)

    async def switch_topic(self, chat_id: int, topic: Topic) -> None:
        """Select a topic and list what's in it."""
        self._sessions.set_topic(chat_id, topic)

        try:
            items = self._store.list_active(chat_id, topic)
        except StorageError as exc:
            logger.error("Couldn't list %s for chat %d: %s", topic.value, chat_id, exc)
            await self._notifier.send_message(chat_id, STORAGE_FAILURE_TEXT)
            return

        if topic is not Topic.REMINDERS or not items:
            await self._notifier.send_message(
                chat_id, format_topic_list(topic, items), show_menu=True,
            )
            return

        # Reminders are listed one per message so each gets its own ✅ button.
        await self._notifier.send_message(chat_id, format_topic_header(topic), show_menu=True)
        for item in items:
            await self._notifier.send_message(
                chat_id, format_reminder(item), done_item_id=item.id,
            )

    async def capture(self, chat_id: int, text: str) -> None:
        """Store free text under the chat's current (TTL-checked) topic."""
        session = self._sessions.touch(chat_id)

        try:
            self._store.add_item(chat_id, session.topic, text)
        except StorageError as exc:
            logger.error("Couldn't store item for chat %d: %s", chat_id, exc)
            await self._notifier.send_message(chat_id, STORAGE_FAILURE_TEXT)
            return

        await self._notifier.send_message(
            chat_id, format_capture_ack(session.topic), show_menu=True,
        )

    async def send_agenda(self, chat_id: int) -> None:
        """Reply with today's agenda (the morning digest, on demand)."""
        if self._calendar is None:
            await self._notifier.send_message(chat_id, "No calendar is configured.")
            return
        now = self._clock() if self._clock is not None else datetime.now().astimezone()
        agenda = await build_agenda(self._calendar, now)
        await self._notifier.send_message(chat_id, format_digest(agenda))

    def _learn_chat(self, chat_id: int) -> None:
        try:
            self._target_chat.learn(chat_id)
        except StorageError as exc:
            logger.warning("Couldn't remember chat %d as target: %s", chat_id, exc)

"""
GTD Assistant — Target chat resolution.

Scheduler messages (reminders, digest, wipe notice) are not replies, so
they need an address. CHAT_ID from the config wins; otherwise the bot
remembers the last chat that wrote to it and persists that choice so it
survives a restart.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from src.data.db import StorageError

if TYPE_CHECKING:
    from src.data.db import ItemDB

logger = logging.getLogger(__name__)

TARGET_CHAT_KEY = "target_chat_id"


class TargetChat:
    """Resolves and learns the chat that receives scheduler messages."""

    def __init__(self, store: ItemDB, configured_chat_id: int | None = None) -> None:
        self._store = store
        self._configured = configured_chat_id
        self._learned: int | None = None
        self._loaded = False
        self._lock = threading.Lock()

    def resolve(self) -> int | None:
        """Return the target chat ID, or None if none is known yet.

        Raises StorageError if the persisted value can't be read.
        """
        if self._configured is not None:
            return self._configured
        with self._lock:
            if not self._loaded:
                raw = self._store.get_setting(TARGET_CHAT_KEY)
                try:
                    self._learned = int(raw) if raw else None
                except ValueError as exc:
                    raise StorageError(f"Corrupt {TARGET_CHAT_KEY} value {raw!r}") from exc
                self._loaded = True
            return self._learned

    def learn(self, chat_id: int) -> None:
        """Remember the chat that most recently contacted the bot."""
        if self._configured is not None:
            return
        with self._lock:
            if self._loaded and self._learned == chat_id:
                return
            self._store.set_setting(TARGET_CHAT_KEY, str(chat_id))
            self._learned = chat_id
            self._loaded = True
        logger.info("Target chat set to %d", chat_id)

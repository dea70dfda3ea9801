"""
GTD Assistant — Session Registry.

Remembers which topic each chat is currently filing into. A topic chosen
with a button stays selected only while the chat keeps talking: after
TTL of silence the next captured text falls back to the inbox.

The registry is shared between the update handlers and the scheduler, so
one lock guards the whole map. Callers always receive copies.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable

from src.data.models import Session, Topic

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def system_clock(tz) -> Clock:
    """Return a clock reading wall time in the given zone."""
    return lambda: datetime.now(tz)


class SessionRegistry:
    """In-memory chat_id → Session map with TTL-based topic expiry."""

    def __init__(self, ttl: timedelta, clock: Clock) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[int, Session] = {}
        self._lock = threading.Lock()

    def _get_or_create_locked(self, chat_id: int, now: datetime) -> Session:
        session = self._sessions.get(chat_id)
        if session is None:
            session = Session(chat_id=chat_id, topic=Topic.INBOX, last_activity=now)
            self._sessions[chat_id] = session
            logger.debug("New session for chat %d", chat_id)
        return session

    def get_or_create(self, chat_id: int) -> Session:
        with self._lock:
            return replace(self._get_or_create_locked(chat_id, self._clock()))

    def touch(self, chat_id: int) -> Session:
        """Apply TTL expiry and refresh last activity.

        Must be called exactly once per captured text, right before
        choosing where to store it.
        """
        with self._lock:
            now = self._clock()
            session = self._get_or_create_locked(chat_id, now)
            if session.topic is not Topic.INBOX and now - session.last_activity > self._ttl:
                logger.info(
                    "Topic %s expired for chat %d, back to inbox",
                    session.topic.value, chat_id,
                )
                session.topic = Topic.INBOX
            session.last_activity = now
            return replace(session)

    def set_topic(self, chat_id: int, topic: Topic) -> Session:
        """Explicit topic switch; always succeeds regardless of staleness."""
        with self._lock:
            now = self._clock()
            session = self._get_or_create_locked(chat_id, now)
            session.topic = topic
            session.last_activity = now
            return replace(session)

    def reset(self, chat_id: int) -> Session:
        return self.set_topic(chat_id, Topic.INBOX)

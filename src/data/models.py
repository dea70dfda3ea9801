"""
GTD Assistant — Data Models.

Items persist in SQLite and survive bot restarts. Sessions live in memory
only: a restart sends every chat back to the inbox.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


class Topic(str, Enum):
    """The lists an item can be filed under. INBOX is the default."""

    INBOX = "inbox"
    TASKS = "tasks"
    REMINDERS = "reminders"
    SHOPPING = "shopping"


class ItemStatus(IntEnum):
    ACTIVE = 0
    DONE = 1


@dataclass
class Item:
    """A captured line of text filed under a topic.

    Created from free text; only ever moves from ACTIVE to DONE
    (user tapped ✅, or the nightly wipe swept the reminders).
    """

    id: int
    chat_id: int
    topic: Topic
    text: str                 # stored verbatim
    created_at: datetime
    status: ItemStatus = ItemStatus.ACTIVE

    @property
    def active(self) -> bool:
        return self.status is ItemStatus.ACTIVE


@dataclass
class Session:
    """Per-chat topic selection. Valid only while it keeps being touched."""

    chat_id: int
    topic: Topic
    last_activity: datetime

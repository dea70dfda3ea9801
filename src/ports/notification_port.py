"""Notification port — abstract interface for sending messages to users.

Core modules depend on this protocol, never on a specific messaging provider.
The only interactive affordance is the per-item "done" button, whose
callback payload is `done:<item id>`.
"""

from __future__ import annotations

from typing import Protocol

DONE_CALLBACK_PREFIX = "done"


def encode_done(item_id: int) -> str:
    """Build the callback payload carried by an item's done button."""
    return f"{DONE_CALLBACK_PREFIX}:{item_id}"


def decode_done(data: str | None) -> int | None:
    """Extract the item ID from a done-button payload, or None if malformed."""
    if not data:
        return None
    prefix, sep, raw_id = data.partition(":")
    if prefix != DONE_CALLBACK_PREFIX or not sep:
        return None
    try:
        return int(raw_id)
    except ValueError:
        return None


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        done_item_id: int | None = None,
        show_menu: bool = False,
    ) -> int: ...

    async def edit_message_text(self, chat_id: int, message_id: int, text: str) -> None: ...

    async def remove_affordances(self, chat_id: int, message_id: int) -> None: ...

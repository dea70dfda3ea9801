"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance to satisfy the NotificationPort protocol and
owns the two keyboards the bot shows: the topic reply keyboard and the
per-item inline ✅ button.
"""

from __future__ import annotations

import logging

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup

from src.ports.notification_port import encode_done

logger = logging.getLogger(__name__)

MENU_BUTTONS = [["Tasks", "Reminders", "Shopping"], ["Inbox", "Menu"]]


def main_menu_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(MENU_BUTTONS, resize_keyboard=True)


def done_keyboard(item_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("✅ Done", callback_data=encode_done(item_id))]]
    )


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        done_item_id: int | None = None,
        show_menu: bool = False,
    ) -> int:
        reply_markup = None
        if done_item_id is not None:
            reply_markup = done_keyboard(done_item_id)
        elif show_menu:
            reply_markup = main_menu_keyboard()

        message = await self._bot.send_message(
            chat_id=chat_id, text=text, reply_markup=reply_markup,
        )
        return message.message_id

    async def edit_message_text(self, chat_id: int, message_id: int, text: str) -> None:
        await self._bot.edit_message_text(text=text, chat_id=chat_id, message_id=message_id)

    async def remove_affordances(self, chat_id: int, message_id: int) -> None:
        await self._bot.edit_message_reply_markup(
            chat_id=chat_id, message_id=message_id, reply_markup=None,
        )

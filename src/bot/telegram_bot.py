"""
GTD Assistant — Telegram Bot.

Telegram is the only user interface. Handlers here only translate
Telegram updates into Dispatcher calls; all list and session logic lives
in src.core.

The daily scheduler runs as a task on the same event loop. It starts in
post_init and is stopped (and awaited) in post_stop, while the bot can
still send.

Security-first: when ALLOWED_USER_IDS is set, other users are silently ignored.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import wraps
from typing import Any, Callable, Coroutine

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.ports.notification_port import DONE_CALLBACK_PREFIX

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def _is_allowed(user_id: int | None) -> bool:
    if not settings.ALLOWED_USER_IDS:
        return True
    return user_id in settings.ALLOWED_USER_IDS


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores updates from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or not _is_allowed(user.id):
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


def _dispatcher(context: ContextTypes.DEFAULT_TYPE):
    return context.bot_data["dispatcher"]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — reset to the inbox and show the menu."""
    await _dispatcher(context).handle_command(update.effective_chat.id, "start")


@authorized_only
async def cmd_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /menu — same as /start."""
    await _dispatcher(context).handle_command(update.effective_chat.id, "menu")


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _dispatcher(context).handle_command(update.effective_chat.id, "help")


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — today's agenda on demand."""
    await _dispatcher(context).handle_command(update.effective_chat.id, "today")


# ---------------------------------------------------------------------------
# Message and button handlers
# ---------------------------------------------------------------------------


@authorized_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text — topic buttons and captured items alike."""
    message = update.message
    if message is None:  # edited messages are not re-captured
        return
    await _dispatcher(context).handle_text(update.effective_chat.id, message.text)


@authorized_only
async def handle_done_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a ✅ tap on an item message."""
    query = update.callback_query
    # Stop the button's loading spinner whatever happens next.
    await query.answer()

    if query.message is None:
        return
    await _dispatcher(context).handle_done(
        query.message.chat.id, query.message.message_id, query.data,
    )


async def _on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing %s: %s", update, context.error)


# ---------------------------------------------------------------------------
# Scheduler lifecycle
# ---------------------------------------------------------------------------


async def _start_scheduler(app: Application) -> None:
    app.bot_data["scheduler"].start()


async def _stop_scheduler(app: Application) -> None:
    await app.bot_data["scheduler"].stop()


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(store=None, calendar=None, notifier=None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: ItemDB instance. Defaults to one at DATABASE_PATH.
        calendar: Calendar port implementation. Defaults to the adapter
                  selected by CALENDAR_PROVIDER.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    from src.core.dispatcher import Dispatcher
    from src.core.scheduler import build_triggers
    from src.core.session import SessionRegistry, system_clock
    from src.core.target_chat import TargetChat
    from src.core.triggers import DailyTriggerScheduler

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_start_scheduler)
        .post_stop(_stop_scheduler)
        .build()
    )

    # Wire default adapters if not provided
    if store is None:
        from src.data.db import ItemDB
        store = ItemDB()

    if calendar is None:
        from src.adapters.calendar_factory import create_calendar_adapter
        calendar = create_calendar_adapter()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    clock = system_clock(settings.tzinfo)
    sessions = SessionRegistry(ttl=timedelta(minutes=settings.TOPIC_TTL_MINUTES), clock=clock)
    target_chat = TargetChat(store, configured_chat_id=settings.CHAT_ID)

    app.bot_data["dispatcher"] = Dispatcher(
        sessions, store, notifier, target_chat, calendar=calendar, clock=clock,
    )
    app.bot_data["scheduler"] = DailyTriggerScheduler(
        build_triggers(notifier, store, calendar, target_chat),
        clock=clock,
        poll_interval_seconds=settings.SCHEDULER_POLL_SECONDS,
    )

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("menu", cmd_menu))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("today", cmd_today))
    app.add_handler(
        CallbackQueryHandler(handle_done_callback, pattern=rf"^{DONE_CALLBACK_PREFIX}:")
    )

    # New text messages (non-command): topic buttons and captures. Edits are ignored.
    app.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND, handle_text)
    )

    app.add_error_handler(_on_error)

    logger.info(
        "Telegram bot built: TTL %d min, reminders at %s, digest %s, wipe %s (%s)",
        settings.TOPIC_TTL_MINUTES,
        ", ".join(settings.REMINDER_TIMES),
        settings.MORNING_DIGEST_TIME,
        settings.NIGHTLY_WIPE_TIME,
        settings.TIMEZONE,
    )
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting GTD Assistant bot...")
    app = build_app()
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()

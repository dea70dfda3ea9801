"""
GTD Assistant — Message text.

Everything the bot says about items and topics is built here so the
update handlers and the daily jobs word things the same way.
"""

from __future__ import annotations

from src.data.models import Item, Topic

TOPIC_TITLES = {
    Topic.INBOX: "Inbox",
    Topic.TASKS: "Tasks",
    Topic.REMINDERS: "Reminders",
    Topic.SHOPPING: "Shopping",
}

# Button labels and typed aliases (matched case-insensitively)
_TOPIC_LABELS = {
    "inbox": Topic.INBOX,
    "basket": Topic.INBOX,
    "корзина": Topic.INBOX,
    "tasks": Topic.TASKS,
    "задачи": Topic.TASKS,
    "reminders": Topic.REMINDERS,
    "напоминания": Topic.REMINDERS,
    "shopping": Topic.SHOPPING,
    "покупки": Topic.SHOPPING,
}

MENU_LABELS = frozenset({"menu", "меню"})

MENU_TEXT = (
    "Main menu. Pick a list below, then just type:\n"
    "everything you send goes to the selected list.\n"
    "Without a selection (or after a pause) it lands in the Inbox."
)

HELP_TEXT = (
    "Available commands:\n"
    "/start — Show the main menu\n"
    "/menu — Reset to the Inbox and show the menu\n"
    "/today — Today's calendar agenda\n"
    "/help — Show this message\n\n"
    "Tap Tasks, Reminders, Shopping or Inbox to switch lists and see what's in them."
)

STORAGE_FAILURE_TEXT = "Sorry, I couldn't reach my storage. Please try again."


def parse_topic_label(text: str) -> Topic | None:
    return _TOPIC_LABELS.get(text.strip().lower())


def is_menu_label(text: str) -> bool:
    return text.strip().lower() in MENU_LABELS


def topic_title(topic: Topic) -> str:
    return TOPIC_TITLES[topic]


def format_reminder(item: Item) -> str:
    return f"🔔 {item.text}"


def format_done(item: Item) -> str:
    return f"✅ {item.text}"


def format_topic_header(topic: Topic) -> str:
    return f"Current list: {topic_title(topic)}"


def format_topic_list(topic: Topic, items: list[Item]) -> str:
    """One message listing every active item of a topic."""
    header = format_topic_header(topic)
    if not items:
        return f"{header}\n\nNothing here yet."
    lines = [f"{i}. {item.text}" for i, item in enumerate(items, start=1)]
    return f"{header}\n\n" + "\n".join(lines)


def format_capture_ack(topic: Topic) -> str:
    return f"Added to {topic_title(topic)}"


def format_digest(agenda: str) -> str:
    return f"☀️ Today's schedule:\n{agenda}"


def format_wipe_notice(cleared: int) -> str:
    return f"🧹 Reminders cleared for the night ({cleared} removed)."


def format_agenda(events: list[dict]) -> str:
    """Render calendar events as agenda lines.

    Events are dicts with `summary`, `start_time` and `end_time` (ISO
    strings; a bare date means an all-day event).
    """
    if not events:
        return "No events today."

    lines = []
    for ev in events:
        start = ev.get("start_time", "")
        end = ev.get("end_time", "")
        summary = ev.get("summary") or "(no title)"
        if "T" not in start:
            lines.append(f"• all day  {summary}")
            continue
        # Extract HH:MM from ISO datetime
        start = start.split("T")[1][:5]
        if "T" in end:
            end = end.split("T")[1][:5]
        lines.append(f"• {start} – {end}  {summary}")
    return "\n".join(lines)

from __future__ import annotations

import logging
from typing import Optional

from telegram import Bot

from config import REVIEW_ALERT_BOT_TOKEN, REVIEW_ALERT_CHAT_ID

logger = logging.getLogger(__name__)


def build_alert_bot(token: Optional[str] = None) -> Optional[Bot]:
    """Telegram bot for the reviewer alert chat, or None when not configured."""
    token = token if token is not None else REVIEW_ALERT_BOT_TOKEN
    if not token:
        return None
    return Bot(token=token)


def format_reviewer_alert(
    moderation_id: Optional[int],
    author_id: str,
    severity: str,
    kinds: list,
    excerpt: str,
    recipients: int,
) -> str:
    ref = f"#{moderation_id}" if moderation_id is not None else "(record not saved)"
    lines = [
        f"{severity.upper()} severity content flagged {ref}",
        f"author: {author_id}",
        f"violations: {', '.join(kinds)}",
        f"reviewers notified: {recipients}",
    ]
    if excerpt:
        lines.append(f'"{excerpt}"')
    return "\n".join(lines)


async def send_reviewer_alert(bot, text: str, chat_id: Optional[int] = None) -> bool:
    """
    Mirror a reviewer notification to the Telegram review chat.
    Never raises; returns True when the message was delivered.
    """
    chat_id = chat_id if chat_id is not None else REVIEW_ALERT_CHAT_ID
    if bot is None or not chat_id:
        return False
    try:
        await bot.send_message(chat_id=chat_id, text=text)
        return True
    except Exception as exc:
        logger.error("Failed to push reviewer alert to %s: %s", chat_id, exc, exc_info=True)
        return False

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import moderation_db
from config import (
    FLAGGED_CONTENT_MAX_CHARS,
    NOTIFICATION_EXCERPT_CHARS,
    REVIEWER_ROLES,
)
from contentguard.models import REVIEW_SEVERITIES, ClassificationRequest, EscalationReport, Verdict
from contentguard.services.alerts import format_reviewer_alert, send_reviewer_alert

logger = logging.getLogger(__name__)

RoleLookup = Callable[[str], List[str]]


def _excerpt(content: str, limit: int) -> str:
    return content[:limit] + ("..." if len(content) > limit else "")


def notification_message(request: ClassificationRequest, verdict: Verdict) -> str:
    return (
        f"{verdict.severity_level.capitalize()} severity content violation detected. "
        f"User ID: {request.author_id}. Violation: {', '.join(verdict.kinds)}. "
        f'Content: "{_excerpt(request.content, NOTIFICATION_EXCERPT_CHARS)}"'
    )


def warning_message(content_type: str, kinds: List[str]) -> str:
    return (
        f"Your {content_type} was flagged for: {', '.join(kinds)}. "
        "Please review our community guidelines."
    )


def collect_reviewers(role_lookup: RoleLookup) -> List[str]:
    """Holders of any reviewer role, each listed once."""
    reviewers: List[str] = []
    for role in REVIEWER_ROLES:
        for user_id in role_lookup(role):
            if user_id not in reviewers:
                reviewers.append(user_id)
    return reviewers


async def escalate(
    request: ClassificationRequest,
    verdict: Verdict,
    role_lookup: RoleLookup = moderation_db.list_users_with_role,
    alert_bot=None,
    alert_chat_id: Optional[int] = None,
) -> EscalationReport:
    """
    Persist the moderation record, notify reviewers (high/critical only)
    and warn the author. Each step is attempted independently; failures
    are logged and reported, never raised.
    """
    report = EscalationReport()
    if not verdict.success or not verdict.flagged:
        return report

    # 1. Moderation record (must precede anything that references it)
    try:
        report.moderation_id = moderation_db.insert_moderation_record(
            author_id=request.author_id,
            violation_kind=verdict.primary_kind,
            severity_level=verdict.severity_level,
            flagged_content=request.content[:FLAGGED_CONTENT_MAX_CHARS],
            confidence=verdict.confidence,
            content_type=request.content_type,
            content_id=request.content_id,
        )
    except Exception as e:
        logger.error(f"Error logging moderation record for {request.author_id}: {e}", exc_info=True)
        report.failures.append("moderation_record")

    # 2. Reviewer notifications, only for high/critical
    if verdict.severity_level in REVIEW_SEVERITIES:
        try:
            reviewers = collect_reviewers(role_lookup)
            moderation_db.insert_reviewer_notifications(
                reviewers, report.moderation_id, notification_message(request, verdict)
            )
            report.notified = reviewers
        except Exception as e:
            logger.error(f"Error sending moderation notifications: {e}", exc_info=True)
            report.failures.append("reviewer_notifications")

        if alert_bot is not None:
            text = format_reviewer_alert(
                report.moderation_id,
                request.author_id,
                verdict.severity_level,
                verdict.kinds,
                _excerpt(request.content, NOTIFICATION_EXCERPT_CHARS),
                len(report.notified),
            )
            report.alert_sent = await send_reviewer_alert(alert_bot, text, alert_chat_id)
            if not report.alert_sent:
                report.failures.append("reviewer_alert")

    # 3. Warning for the author, for every flagged verdict
    try:
        report.warning_id = moderation_db.insert_user_warning(
            author_id=request.author_id,
            moderation_id=report.moderation_id,
            warning_type=verdict.primary_kind,
            warning_message=warning_message(request.content_type, verdict.kinds),
        )
    except Exception as e:
        logger.error(f"Error issuing user warning to {request.author_id}: {e}", exc_info=True)
        report.failures.append("user_warning")

    return report

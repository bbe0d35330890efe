from __future__ import annotations

import logging
from typing import Dict, Optional

import moderation_db
from contentguard.models import ClassificationRequest, Verdict
from contentguard.services import metrics
from contentguard.services.escalation import RoleLookup, escalate
from moderation import classify_content

logger = logging.getLogger("contentguard")


async def analyze_content(
    request: ClassificationRequest,
    role_lookup: RoleLookup = moderation_db.list_users_with_role,
    alert_bot=None,
    alert_chat_id: Optional[int] = None,
) -> Dict:
    """
    Classify one submission and run escalation when it was flagged.

    The verdict is computed before any side effect and is returned
    unchanged regardless of how escalation went.
    """
    verdict: Verdict = classify_content(request.content)
    metrics.record_verdict(verdict)

    if not verdict.success:
        logger.info(f"Structural rejection for user {request.author_id}: {verdict.errors}")
        return verdict.to_response()

    if verdict.flagged:
        logger.info(
            f"Content violation detected for user {request.author_id}: "
            f"violations={verdict.kinds} severity={verdict.severity_level} confidence={verdict.confidence}"
        )
        report = await escalate(request, verdict, role_lookup, alert_bot, alert_chat_id)
        if report.failures:
            metrics.record_escalation_failures(len(report.failures))
            logger.warning(f"Escalation incomplete for user {request.author_id}: {report.failures}")

    return verdict.to_response()

"""
Caller-side policy for content validation verdicts.

Features that submit messages, posts or comments call `validate_content`
and act on `decide(verdict)`: block, allow with a warning, or allow.
Anything that prevents a verdict from arriving fails closed.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

VALIDATION_PATH = "/secure-content-validation"
RETRY_MESSAGE = "Unable to validate content. Please try again."

BLOCK = "block"
WARN = "warn"
ALLOW = "allow"


@dataclass
class PolicyDecision:
    action: str  # "block" | "warn" | "allow"
    notice: Optional[str] = None
    retry: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def persist(self) -> bool:
        return self.action != BLOCK


def fail_closed() -> Dict:
    return {
        "success": False,
        "flagged": True,
        "violations": ["validation_error"],
        "message": RETRY_MESSAGE,
    }


def decide(verdict: Dict) -> PolicyDecision:
    """Map a classifier verdict onto what the submitting feature should do."""
    if "validation_error" in verdict.get("violations", []):
        return PolicyDecision(action=BLOCK, notice=RETRY_MESSAGE, retry=True)

    if not verdict.get("success", False):
        if verdict.get("errors"):
            return PolicyDecision(
                action=BLOCK,
                notice="Your content could not be accepted.",
                errors=list(verdict["errors"]),
            )
        return PolicyDecision(action=BLOCK, notice=RETRY_MESSAGE, retry=True)

    if not verdict.get("flagged", True):
        return PolicyDecision(action=ALLOW)

    severity = verdict.get("severityLevel")
    if severity in ("high", "critical"):
        return PolicyDecision(
            action=BLOCK,
            notice="Your content violates our community guidelines and has been blocked.",
        )
    if severity == "medium":
        return PolicyDecision(
            action=WARN,
            notice="Your content may not meet our community standards. Please review before posting.",
        )
    return PolicyDecision(action=WARN, notice="Your content was flagged for review.")


def sanitize_content(content: str) -> str:
    """HTML-escape user content before rendering it."""
    return html.escape(content.strip(), quote=True)


async def validate_content(
    content: str,
    user_id: str,
    content_type: str = "message",
    *,
    base_url: str,
    content_id: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 10.0,
) -> Dict:
    """
    Ask the validation service for a verdict. Transport errors, timeouts,
    5xx responses and unreadable bodies come back as a fail-closed verdict.
    """
    payload = {"content": content, "userId": user_id, "contentType": content_type}
    if content_id is not None:
        payload["contentId"] = content_id

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
    try:
        response = await client.post(VALIDATION_PATH, json=payload)
        response.raise_for_status()
        verdict = response.json()
        if not isinstance(verdict, dict) or "flagged" not in verdict:
            logger.error(f"Unexpected validation response: {verdict!r}")
            return fail_closed()
        return verdict
    except httpx.HTTPStatusError as e:
        logger.error(f"Content validation error: HTTP {e.response.status_code}")
        return fail_closed()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error validating content: {e}")
        return fail_closed()
    finally:
        if owns_client:
            await client.aclose()

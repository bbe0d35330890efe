from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

from fastapi import APIRouter, FastAPI, Header, HTTPException, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

import moderation_db
from config import REVIEW_ALERT_CHAT_ID, REVIEW_API_TOKEN
from contentguard.engine.orchestrator import analyze_content
from contentguard.models import ClassificationRequest
from contentguard.services import metrics
from contentguard.services.alerts import build_alert_bot

logger = logging.getLogger("contentguard")

router = APIRouter()

VALIDATION_PATH = "/secure-content-validation"
INTERNAL_ERROR = "Internal server error during content validation"
INVALID_REQUEST = "Invalid content validation request"


class ValidationIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left untyped so a missing or non-string body field becomes a
    # structural rejection instead of a request error.
    content: Any = None
    user_id: str = Field(alias="userId")
    content_type: Literal["message", "post", "comment", "profile"] = Field(default="message", alias="contentType")
    content_id: Optional[str] = Field(default=None, alias="contentId")


class AcknowledgeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")


class ReviewedIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reviewer_id: Optional[str] = Field(default=None, alias="reviewerId")


def _require_reviewer(request: Request, token: Optional[str]) -> None:
    expected = request.app.state.review_token
    if not expected or token != expected:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post(VALIDATION_PATH)
async def secure_content_validation(data: ValidationIn, request: Request):
    state = request.app.state
    try:
        payload = await analyze_content(
            ClassificationRequest(
                content=data.content,
                author_id=data.user_id,
                content_type=data.content_type,
                content_id=data.content_id,
            ),
            role_lookup=state.role_lookup,
            alert_bot=state.alert_bot,
            alert_chat_id=state.alert_chat_id,
        )
        return payload
    except Exception as e:
        logger.error(f"Error in content validation: {e}", exc_info=True)
        return JSONResponse({"success": False, "error": INTERNAL_ERROR}, status_code=500)


@router.get("/moderation/pending")
async def pending_records(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    x_review_token: Optional[str] = Header(default=None),
):
    _require_reviewer(request, x_review_token)
    return moderation_db.get_pending_records(limit)


@router.get("/moderation/notifications/{recipient_id}")
async def reviewer_inbox(
    recipient_id: str,
    request: Request,
    x_review_token: Optional[str] = Header(default=None),
):
    _require_reviewer(request, x_review_token)
    return moderation_db.get_notifications_for(recipient_id)


@router.post("/moderation/{record_id}/reviewed")
async def review_record(
    record_id: int,
    request: Request,
    data: Optional[ReviewedIn] = None,
    x_review_token: Optional[str] = Header(default=None),
):
    _require_reviewer(request, x_review_token)
    reviewer_id = data.reviewer_id if data else None
    if not moderation_db.mark_reviewed(record_id, reviewer_id):
        raise HTTPException(status_code=404, detail="not found")
    return {"ok": True}


@router.get("/warnings/{user_id}")
async def unacknowledged_warnings(
    user_id: str,
    request: Request,
    x_review_token: Optional[str] = Header(default=None),
):
    _require_reviewer(request, x_review_token)
    return moderation_db.get_unacknowledged_warnings(user_id)


@router.post("/warnings/{warning_id}/acknowledge")
async def acknowledge(
    warning_id: int,
    data: AcknowledgeIn,
    request: Request,
    x_review_token: Optional[str] = Header(default=None),
):
    _require_reviewer(request, x_review_token)
    if not moderation_db.acknowledge_warning(warning_id, data.user_id):
        raise HTTPException(status_code=404, detail="not found")
    return {"ok": True}


@router.get("/stats")
async def stats(request: Request, x_review_token: Optional[str] = Header(default=None)):
    _require_reviewer(request, x_review_token)
    return metrics.snapshot()


async def validation_request_error(request: Request, exc: RequestValidationError):
    """
    Keep the validation endpoint inside its own response contract: an
    unparseable body is an internal failure, a malformed one is a 422.
    Other routes keep the default FastAPI error body.
    """
    if request.url.path != VALIDATION_PATH:
        return await request_validation_exception_handler(request, exc)
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        logger.error(f"Unparseable content validation body: {exc.errors()}")
        return JSONResponse({"success": False, "error": INTERNAL_ERROR}, status_code=500)
    return JSONResponse({"success": False, "error": INVALID_REQUEST}, status_code=422)


@router.get("/health")
async def health():
    return {"ok": True}


def create_app(
    role_lookup=None,
    alert_bot=None,
    alert_chat_id: Optional[int] = REVIEW_ALERT_CHAT_ID,
    review_token: Optional[str] = REVIEW_API_TOKEN,
) -> FastAPI:
    """
    Build the validation service. Collaborators default to the SQLite role
    table and the configured Telegram alert bot; tests pass their own.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting content validation service...")
        moderation_db.init_db()
        bot = app.state.alert_bot
        if bot is not None:
            try:
                await bot.initialize()
            except Exception as e:
                logger.warning(f"Reviewer alert bot unavailable: {e}")
                app.state.alert_bot = None
        yield
        if app.state.alert_bot is not None:
            await app.state.alert_bot.shutdown()
        logger.info("Content validation service stopped")

    app = FastAPI(title="Content Guard", version="1.0.0", lifespan=lifespan)
    app.state.role_lookup = role_lookup or moderation_db.list_users_with_role
    app.state.alert_bot = alert_bot if alert_bot is not None else build_alert_bot()
    app.state.alert_chat_id = alert_chat_id
    app.state.review_token = review_token
    app.include_router(router)
    app.add_exception_handler(RequestValidationError, validation_request_error)
    return app

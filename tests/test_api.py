import pytest
from fastapi.testclient import TestClient

import moderation_db
from contentguard.handlers import api
from contentguard.handlers.api import create_app

TOKEN = "review-secret"
HEADERS = {"X-Review-Token": TOKEN}


@pytest.fixture
def client(temp_db):
    app = create_app(review_token=TOKEN, alert_bot=None, alert_chat_id=None)
    with TestClient(app) as c:
        yield c


def _validate(client, content, user_id="user-1", **extra):
    body = {"content": content, "userId": user_id}
    body.update(extra)
    return client.post("/secure-content-validation", json=body)


def test_abusive_content_is_flagged(client):
    resp = _validate(client, "You are so stupid and worthless, kys")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["flagged"] is True
    assert "abusive_language" in data["violations"]
    assert data["severityLevel"] in ("medium", "high", "critical")
    assert data["message"] == "Content flagged for moderation review"


def test_clean_content_is_approved(client):
    resp = _validate(client, "I have a great recipe for pasta tonight!")
    assert resp.json() == {
        "success": True,
        "flagged": False,
        "violations": [],
        "message": "Content approved",
    }


def test_links_are_rejected_structurally(client):
    resp = _validate(client, "Check my site www.freemoney.com now!!!", contentType="post")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is False
    assert data["flagged"] is True
    assert data["violations"] == ["invalid_structure"]
    assert "External links not allowed" in data["errors"]
    assert "severityLevel" not in data


def test_missing_content_is_a_structural_rejection(client):
    resp = client.post("/secure-content-validation", json={"userId": "user-1"})
    assert resp.status_code == 200
    assert resp.json()["errors"] == ["Content must be a non-empty string"]


def test_unknown_content_type_is_a_bad_request(client):
    resp = _validate(client, "hello there", contentType="story")
    assert resp.status_code == 422
    assert resp.json() == {"success": False, "error": "Invalid content validation request"}


def test_missing_user_id_is_a_bad_request(client):
    resp = client.post("/secure-content-validation", json={"content": "hello there"})
    assert resp.status_code == 422
    assert resp.json()["success"] is False


def test_unparseable_body_returns_500(client):
    resp = client.post(
        "/secure-content-validation",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error during content validation"}


def test_other_routes_keep_default_validation_errors(client):
    resp = client.post("/warnings/1/acknowledge", json={}, headers=HEADERS)
    assert resp.status_code == 422
    assert "detail" in resp.json()


def test_internal_failure_returns_500(client, monkeypatch):
    async def _broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(api, "analyze_content", _broken)
    resp = _validate(client, "hello there")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error during content validation"}


def test_pending_queue_requires_token(client):
    assert client.get("/moderation/pending").status_code == 403
    assert client.get("/moderation/pending", headers={"X-Review-Token": "nope"}).status_code == 403


def test_reviewer_workflow(client):
    _validate(client, "you are such an idiot", user_id="author-7")
    headers = {"X-Review-Token": TOKEN}

    pending = client.get("/moderation/pending", headers=headers).json()
    assert len(pending) == 1
    record_id = pending[0]["id"]
    assert pending[0]["author_id"] == "author-7"

    resp = client.post(f"/moderation/{record_id}/reviewed", json={"reviewerId": "mod-1"}, headers=headers)
    assert resp.json() == {"ok": True}
    assert client.get("/moderation/pending", headers=headers).json() == []
    assert moderation_db.get_moderation_record(record_id)["reviewed_by"] == "mod-1"

    missing = client.post("/moderation/9999/reviewed", headers=headers)
    assert missing.status_code == 404


def test_warning_routes_require_token(client):
    _validate(client, "you are such an idiot", user_id="victim")

    assert client.get("/warnings/victim").status_code == 403
    assert client.post("/warnings/1/acknowledge", json={"userId": "victim"}).status_code == 403
    bad = {"X-Review-Token": "nope"}
    assert client.get("/warnings/victim", headers=bad).status_code == 403

    # still unacknowledged
    assert len(client.get("/warnings/victim", headers=HEADERS).json()) == 1


def test_author_acknowledges_warning(client):
    _validate(client, "you are such an idiot", user_id="author-8")

    warnings = client.get("/warnings/author-8", headers=HEADERS).json()
    assert len(warnings) == 1
    warning_id = warnings[0]["id"]

    stranger = client.post(f"/warnings/{warning_id}/acknowledge", json={"userId": "someone-else"}, headers=HEADERS)
    assert stranger.status_code == 404

    resp = client.post(f"/warnings/{warning_id}/acknowledge", json={"userId": "author-8"}, headers=HEADERS)
    assert resp.json() == {"ok": True}
    assert client.get("/warnings/author-8", headers=HEADERS).json() == []


def test_stats_and_health(client):
    _validate(client, "I have a great recipe for pasta tonight!")
    assert client.get("/health").json() == {"ok": True}

    assert client.get("/stats").status_code == 403
    stats = client.get("/stats", headers={"X-Review-Token": TOKEN}).json()
    assert stats["total_checked"] >= 1


def test_reviewer_inbox(client, reviewers):
    _validate(client, "You are so stupid and worthless, kys", user_id="author-3")

    assert client.get("/moderation/notifications/mod-1").status_code == 403

    inbox = client.get("/moderation/notifications/mod-1", headers=HEADERS).json()
    assert len(inbox) == 1
    assert "User ID: author-3" in inbox[0]["message"]
    assert client.get("/moderation/notifications/user-9", headers=HEADERS).json() == []

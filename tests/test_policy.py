import httpx
import pytest

from contentguard.services.policy import (
    ALLOW,
    BLOCK,
    RETRY_MESSAGE,
    WARN,
    decide,
    sanitize_content,
    validate_content,
)

BASE_URL = "http://guard.test"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)


def test_high_and_critical_block():
    for severity in ("high", "critical"):
        decision = decide({"success": True, "flagged": True, "violations": ["dangerous_content"], "severityLevel": severity})
        assert decision.action == BLOCK
        assert decision.persist is False


def test_medium_warns_but_persists():
    decision = decide({"success": True, "flagged": True, "violations": ["abusive_language"], "severityLevel": "medium"})
    assert decision.action == WARN
    assert decision.persist is True
    assert "community standards" in decision.notice


def test_clean_content_is_allowed_silently():
    decision = decide({"success": True, "flagged": False, "violations": [], "message": "Content approved"})
    assert decision.action == ALLOW
    assert decision.notice is None


def test_structural_rejection_blocks_with_errors():
    decision = decide({
        "success": False,
        "flagged": True,
        "violations": ["invalid_structure"],
        "errors": ["External links not allowed"],
    })
    assert decision.action == BLOCK
    assert decision.errors == ["External links not allowed"]
    assert decision.retry is False


def test_internal_error_payload_blocks_with_retry():
    decision = decide({"success": False, "error": "Internal server error during content validation"})
    assert decision.action == BLOCK
    assert decision.retry is True


def test_sanitize_content_escapes_html():
    assert sanitize_content("  <b>\"Tom\" & 'Jerry'</b> ") == "&lt;b&gt;&quot;Tom&quot; &amp; &#x27;Jerry&#x27;&lt;/b&gt;"


@pytest.mark.asyncio
async def test_validate_content_returns_service_verdict():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = request.read()
        return httpx.Response(200, json={"success": True, "flagged": False, "violations": [], "message": "Content approved"})

    async with _client(handler) as client:
        verdict = await validate_content("hello", "user-1", "post", base_url=BASE_URL, content_id="p-1", client=client)

    assert verdict["flagged"] is False
    assert seen["path"] == "/secure-content-validation"
    assert b'"contentType":"post"' in seen["body"].replace(b" ", b"")
    assert b'"contentId":"p-1"' in seen["body"].replace(b" ", b"")


@pytest.mark.asyncio
@pytest.mark.parametrize("handler", [
    lambda request: httpx.Response(500, json={"success": False, "error": "Internal server error during content validation"}),
    lambda request: httpx.Response(200, text="not json"),
    lambda request: httpx.Response(200, json={"unexpected": True}),
])
async def test_bad_responses_fail_closed(handler):
    async with _client(handler) as client:
        verdict = await validate_content("hello", "user-1", base_url=BASE_URL, client=client)

    assert verdict == {
        "success": False,
        "flagged": True,
        "violations": ["validation_error"],
        "message": RETRY_MESSAGE,
    }
    assert decide(verdict).action == BLOCK


@pytest.mark.asyncio
async def test_transport_errors_fail_closed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        verdict = await validate_content("hello", "user-1", base_url=BASE_URL, client=client)

    decision = decide(verdict)
    assert decision.action == BLOCK
    assert decision.retry is True
    assert decision.notice == RETRY_MESSAGE

import base64
import json

import httpx
import pytest

from cpq.config import settings
from cpq.services.external.openai import (
    OpenAIConfigurationError,
    OpenAIError,
    OpenAIRateLimitError,
    OpenAIService,
    strip_markdown_fences,
)
from cpq.services.external.resend import EmailAttachment, ResendError, ResendService
from cpq.utils.request_retry import is_retryable_request_error


def completion(content: str) -> dict[str, object]:
    return {
        "model": "gpt-4o-mini",
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 42},
    }


@pytest.fixture(autouse=True)
def api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "resend_api_key", "re_test")


@pytest.mark.parametrize(
    "content",
    ['{"a": 1}', '```json\n{"a": 1}\n```', '```\n{"a": 1}\n```', '  {"a": 1}  '],
)
def test_strip_markdown_fences(content: str) -> None:
    assert json.loads(strip_markdown_fences(content)) == {"a": 1}


def test_gateway_errors_retry_only_when_enabled() -> None:
    request = httpx.Request("POST", "https://api.test")
    bad_gateway = httpx.HTTPStatusError("502", request=request, response=httpx.Response(502, request=request))
    server_error = httpx.HTTPStatusError("500", request=request, response=httpx.Response(500, request=request))

    assert is_retryable_request_error(httpx.ConnectError("refused"))
    assert is_retryable_request_error(bad_gateway, retry_server_errors=True)
    assert not is_retryable_request_error(bad_gateway)
    assert not is_retryable_request_error(server_error, retry_server_errors=True)


class TestOpenAI:
    async def test_parses_fenced_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=completion('```json\n{"executive_summary": "ok"}\n```'))

        result = await OpenAIService(httpx.MockTransport(handler)).complete_json("system", "user")

        assert result == {"executive_summary": "ok"}
        body = json.loads(seen[0].content)
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0] == {"role": "system", "content": "system"}
        assert seen[0].headers["Authorization"] == "Bearer sk-test"
        assert seen[0].url.path.endswith("/chat/completions")

    async def test_rate_limit(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(429, json={"error": "slow down"}))

        with pytest.raises(OpenAIRateLimitError):
            await OpenAIService(transport).complete_json("s", "u")

    async def test_rejected_key(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(401))

        with pytest.raises(OpenAIConfigurationError):
            await OpenAIService(transport).complete_json("s", "u")

    async def test_missing_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "")

        with pytest.raises(OpenAIConfigurationError):
            await OpenAIService(httpx.MockTransport(lambda request: httpx.Response(200))).complete_json("s", "u")

    async def test_server_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(OpenAIError):
            await OpenAIService(transport).complete_json("s", "u")

    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    async def test_unusable_content(self, content: str) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=completion(content)))

        with pytest.raises(OpenAIError):
            await OpenAIService(transport).complete_json("s", "u")


class TestResend:
    async def test_sends_with_attachment(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "msg_123"})

        message_id = await ResendService(httpx.MockTransport(handler)).send_email(
            to="buyer@acme.test",
            subject="Quote COT-0042",
            html="<p>Hi</p>",
            reply_to="sales@vendor.test",
            attachments=[EmailAttachment(filename="COT-0042.pdf", content=b"%PDF-1.4")],
        )

        assert message_id == "msg_123"
        body = json.loads(seen[0].content)
        assert body["to"] == ["buyer@acme.test"]
        assert body["from"] == f"{settings.email_from_name} <{settings.email_from}>"
        assert body["reply_to"] == "sales@vendor.test"
        assert body["attachments"] == [
            {"filename": "COT-0042.pdf", "content": base64.b64encode(b"%PDF-1.4").decode("ascii")}
        ]
        assert seen[0].url.path == "/emails"

    async def test_rejected_message(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "invalid to"}))

        with pytest.raises(ResendError):
            await ResendService(transport).send_email(to="bad", subject="s", html="h")

    async def test_missing_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "resend_api_key", "")

        with pytest.raises(ResendError):
            await ResendService().send_email(to="a@b.test", subject="s", html="h")

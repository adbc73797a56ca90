"""Tests for the chat-completions reasoning client."""

import json

import httpx
import pytest

from calldata_interpreter.clients import ReasoningClient
from calldata_interpreter.errors import (
    ConfigMissing,
    InvalidResponseShape,
    NetworkError,
    ReasoningServiceError,
    TimedOut,
)


def make_client(handler, api_key="sk-test", **kwargs) -> ReasoningClient:
    kwargs.setdefault("retry_backoff_s", 0)
    return ReasoningClient(
        base_url="https://llm.test/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestBuildRequestBody:
    def test_shape(self):
        body = ReasoningClient.build_request_body("deepseek-chat", "sys", "user", stream=False)
        assert body == {
            "model": "deepseek-chat",
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "user"},
            ],
            "stream": False,
        }


class TestComplete:
    """ReasoningClient.complete"""

    @pytest.mark.asyncio
    async def test_request_and_content(self, reasoning_client, reasoning_requests, reasoning_reply):
        content = await reasoning_client.complete("deepseek-chat", "You are an auditor.", "Analyze this", stream=True)

        assert content == reasoning_reply
        (request,) = reasoning_requests
        assert request.method == "POST"
        assert str(request.url) == "https://llm.test/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert request.headers["content-type"] == "application/json"

        body = json.loads(request.content)
        assert body["model"] == "deepseek-chat"
        assert body["stream"] is True
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert body["messages"][1]["content"] == "Analyze this"

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        client = make_client(handler, api_key="")
        assert not client.is_configured

        with pytest.raises(ConfigMissing) as exc_info:
            await client.complete("deepseek-chat", "sys", "user")
        assert exc_info.value.setting == "DEEPSEEK_API_KEY"
        assert calls == []

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text='{"error": "invalid api key"}')

        with pytest.raises(ReasoningServiceError) as exc_info:
            await make_client(handler).complete("deepseek-chat", "sys", "user")

        assert exc_info.value.status_code == 401
        assert "invalid api key" in exc_info.value.details["body"]

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TimedOut):
            await make_client(handler).complete("deepseek-chat", "sys", "user")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            await make_client(handler).complete("deepseek-chat", "sys", "user")

    @pytest.mark.asyncio
    async def test_retry_recovers(self, make_chat_completion):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("flaky", request=request)
            return httpx.Response(200, json=make_chat_completion("RISK_LEVEL: Low"))

        content = await make_client(handler, max_attempts=2).complete("deepseek-chat", "sys", "user")

        assert content == "RISK_LEVEL: Low"
        assert len(calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": ["text"]}])
    async def test_missing_choices(self, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(InvalidResponseShape):
            await make_client(handler).complete("deepseek-chat", "sys", "user")

    @pytest.mark.asyncio
    async def test_body_not_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="data: [DONE]")

        with pytest.raises(InvalidResponseShape):
            await make_client(handler).complete("deepseek-chat", "sys", "user")

    @pytest.mark.asyncio
    async def test_missing_content_becomes_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": None}}]})

        assert await make_client(handler).complete("deepseek-chat", "sys", "user") == ""

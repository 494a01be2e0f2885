"""Tests for the chat completion HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from reply_pilot.core.config import CompletionSettings
from reply_pilot.core.models import CompletionRequest
from reply_pilot.intelligence import CompletionError, OpenAIChatClient

REQUEST = CompletionRequest(
    model="gpt-4o-mini",
    system_message="Be kind",
    user_message="Hello?",
    temperature=0.7,
    max_tokens=1000,
)


def _client(handler, *, base_url: str = "https://llm.test/v1") -> OpenAIChatClient:
    return OpenAIChatClient(
        settings=CompletionSettings(base_url=base_url),
        api_key=lambda: "sk-test",
        transport=httpx.MockTransport(handler),
    )


def test_complete_posts_chat_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": "Hi!"}}]}
        )

    assert _client(handler).complete(REQUEST) == "Hi!"

    (request,) = seen
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 1000
    assert body["messages"] == [
        {"role": "system", "content": "Be kind"},
        {"role": "user", "content": "Hello?"},
    ]


def test_missing_choices_yield_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    assert _client(handler).complete(REQUEST) is None


def test_error_status_raises_completion_error() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(429, json={"error": {"message": "slow down"}})

    with pytest.raises(CompletionError, match="429"):
        _client(handler).complete(REQUEST)
    assert calls == 1


def test_invalid_json_raises_completion_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(CompletionError, match="invalid JSON"):
        _client(handler).complete(REQUEST)


def test_transport_errors_raise_completion_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CompletionError):
        _client(handler).complete(REQUEST)

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from care_nav.core.llm import openai_client as openai_module
from care_nav.core.llm.deps import build_openai_client
from care_nav.core.llm.openai_client import (
    OpenAIClient,
    OpenAIConfig,
    OpenAIInvalidJSONError,
    OpenAIRateLimitedError,
    OpenAITimeoutError,
    OpenAIUpstreamError,
)
from care_nav.core.settings import Settings

_RealAsyncClient = httpx.AsyncClient


def _install_transport(monkeypatch: pytest.MonkeyPatch, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    transport = httpx.MockTransport(_handler)
    monkeypatch.setattr(
        openai_module.httpx,
        "AsyncClient",
        lambda **kwargs: _RealAsyncClient(transport=transport, **kwargs),
    )
    return seen


def _client() -> OpenAIClient:
    return OpenAIClient(
        config=OpenAIConfig(
            api_key="sk-test",
            base_url="https://llm.test/v1/",
            model="gpt-test",
            timeout_seconds=2.0,
        )
    )


def _completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def _generate() -> dict:
    return asyncio.run(_client().generate_json(system_prompt="sys", user_prompt="user"))


def test_generate_json_posts_chat_completion(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _install_transport(monkeypatch, lambda r: _completion('{"tier": "in_home"}'))

    assert _generate() == {"tier": "in_home"}

    (request,) = seen
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-test"
    assert body["temperature"] == 0.2
    assert body["response_format"] == {"type": "json_object"}
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


@pytest.mark.parametrize(
    ("response", "error"),
    [
        (httpx.Response(429, json={"error": "slow down"}), OpenAIRateLimitedError),
        (httpx.Response(503, text="unavailable"), OpenAIUpstreamError),
        (_completion("not json"), OpenAIInvalidJSONError),
        (_completion('["a", "list"]'), OpenAIInvalidJSONError),
        (httpx.Response(200, json={"choices": []}), OpenAIInvalidJSONError),
    ],
)
def test_generate_json_error_mapping(monkeypatch: pytest.MonkeyPatch, response, error) -> None:
    _install_transport(monkeypatch, lambda r: response)

    with pytest.raises(error):
        _generate()


def test_generate_json_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    _install_transport(monkeypatch, _raise)

    with pytest.raises(OpenAITimeoutError):
        _generate()


def test_build_openai_client_requires_api_key() -> None:
    assert build_openai_client(Settings(_env_file=None)) is None

    client = build_openai_client(Settings(_env_file=None, openai_api_key="sk-test", openai_timeout_seconds=3))
    assert client is not None
    assert client.timeout_seconds == 3.0

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx


class OpenAIError(Exception):
    """Base error for OpenAI client failures. Callers degrade to "no advice"."""


class OpenAIUpstreamError(OpenAIError):
    """Raised when OpenAI API fails or returns an unexpected response."""


class OpenAITimeoutError(OpenAIUpstreamError):
    """Raised when the request does not complete within the configured timeout."""


class OpenAIRateLimitedError(OpenAIUpstreamError):
    """Raised on HTTP 429 from the API. Never retried."""


class OpenAIInvalidJSONError(OpenAIUpstreamError):
    """Raised when the completion content is not a JSON object."""


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float
    temperature: float = 0.2


class OpenAIClient:
    """
    Minimal OpenAI chat-completions client returning a parsed JSON object.

    - No logging in this module (prompts/outputs describe a person's care needs).
    - One request per call; no retries. Timeouts surface as `OpenAITimeoutError`.
    - The caller validates the returned object against its own schema.
    """

    def __init__(self, *, config: OpenAIConfig):
        self._config = config

    @property
    def timeout_seconds(self) -> float:
        return self._config.timeout_seconds

    async def generate_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        url = f"{self._config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": self._config.model,
            "temperature": self._config.temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
        }

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise OpenAITimeoutError("LLM request timed out") from exc
        except httpx.HTTPError as exc:
            raise OpenAIUpstreamError("LLM request failed") from exc

        if resp.status_code == 429:
            raise OpenAIRateLimitedError("LLM rate limit exceeded")
        if resp.status_code != 200:
            raise OpenAIUpstreamError("LLM service returned an error")

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except Exception as exc:  # noqa: BLE001
            raise OpenAIInvalidJSONError("LLM response was not valid JSON") from exc

        if not isinstance(parsed, dict):
            raise OpenAIInvalidJSONError("LLM response JSON must be an object")

        return parsed

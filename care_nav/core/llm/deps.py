from __future__ import annotations

from fastapi import Request

from care_nav.core.llm.openai_client import OpenAIClient, OpenAIConfig
from care_nav.core.settings import Settings


def build_openai_client(settings: Settings) -> OpenAIClient | None:
    """
    Build the process-wide OpenAIClient from settings.

    Returns None when no API key is configured; the advice path then reports the
    client as unavailable and the deterministic tier is used.
    """

    if not settings.openai_api_key:
        return None

    config = OpenAIConfig(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=float(settings.openai_timeout_seconds),
        temperature=float(settings.openai_temperature),
    )
    return OpenAIClient(config=config)


def get_openai_client(request: Request) -> OpenAIClient | None:
    """Dependency provider returning the client created at application startup."""

    return getattr(request.app.state, "openai_client", None)

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, cast

from pydantic import ValidationError

from care_nav.core.llm.openai_client import (
    OpenAIError,
    OpenAIInvalidJSONError,
    OpenAIRateLimitedError,
    OpenAITimeoutError,
)
from care_nav.core.metrics import gcp_llm_advice_total
from care_nav.gcp.advice.prompt import (
    build_advice_context,
    build_advice_prompts,
    contains_forbidden_term,
)
from care_nav.gcp.advice.schemas import AdviceFailure, AdviceResult, LLMAdvice
from care_nav.gcp.schemas import LLMMode

logger = logging.getLogger("care_nav.gcp.advice")

_ENABLED_MODES = frozenset({"shadow", "assist"})
_FILTERED_FIELDS = ("reasons", "risks", "navi_messages", "questions_next")


class LLMClient(Protocol):
    async def generate_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]: ...


def normalize_llm_mode(raw: str | None, *, default: str = "off") -> LLMMode:
    """Resolve the requested mode; anything outside off|shadow|assist behaves as off."""

    value = (raw if raw is not None else default) or "off"
    mode = str(value).strip().lower()
    if mode == "off" or mode in _ENABLED_MODES:
        return cast(LLMMode, mode)
    logger.warning("Invalid LLM mode; using 'off'", extra={"mode": mode[:32]})
    return "off"


def filter_forbidden_terms(advice: LLMAdvice) -> tuple[LLMAdvice, int]:
    """Drop individual list entries mentioning a forbidden term. Returns (advice, dropped)."""

    update: dict[str, list[str]] = {}
    dropped = 0
    for name in _FILTERED_FIELDS:
        entries: list[str] = getattr(advice, name)
        kept = [entry for entry in entries if not contains_forbidden_term(entry)]
        dropped += len(entries) - len(kept)
        update[name] = kept
    return advice.model_copy(update=update), dropped


class GcpAdviceService:
    """
    One-shot tier advice from the LLM.

    The call is bounded by `timeout_seconds`; on expiry the pending request is cancelled
    and its result, if any, is never observed. Every failure is returned as an
    `AdviceResult` with a reason instead of being raised.
    """

    def __init__(self, *, llm_client: LLMClient | None, timeout_seconds: float):
        self._llm = llm_client
        self._timeout = timeout_seconds

    async def advise(
        self,
        *,
        answers: Mapping[str, Any],
        flags: Iterable[str],
        mode: LLMMode,
        allowed_tiers: Iterable[str] | None = None,
    ) -> AdviceResult:
        allowed = set(allowed_tiers) if allowed_tiers is not None else None
        result = await self._advise(answers=answers, flags=flags, allowed=allowed)

        outcome = "success" if result.success else str(result.failure)
        gcp_llm_advice_total.labels(mode=mode, outcome=outcome).inc()
        logger.info(
            "LLM advice %s",
            "accepted" if result.success else "rejected",
            extra={
                "mode": mode,
                "outcome": outcome,
                "llm_tier": result.advice.tier if result.advice else result.proposed_tier,
            },
        )
        return result

    async def _advise(
        self,
        *,
        answers: Mapping[str, Any],
        flags: Iterable[str],
        allowed: set[str] | None,
    ) -> AdviceResult:
        if self._llm is None:
            return AdviceResult(failure=AdviceFailure.UNAVAILABLE)

        context = build_advice_context(answers, flags)
        system_prompt, user_prompt = build_advice_prompts(context=context, allowed_tiers=allowed)

        try:
            payload = await asyncio.wait_for(
                self._llm.generate_json(system_prompt=system_prompt, user_prompt=user_prompt),
                timeout=self._timeout,
            )
        except (TimeoutError, OpenAITimeoutError):
            return AdviceResult(failure=AdviceFailure.TIMEOUT)
        except OpenAIRateLimitedError:
            return AdviceResult(failure=AdviceFailure.RATE_LIMITED)
        except OpenAIInvalidJSONError:
            return AdviceResult(failure=AdviceFailure.UNPARSABLE)
        except OpenAIError:
            return AdviceResult(failure=AdviceFailure.UPSTREAM_ERROR)
        except Exception:  # noqa: BLE001 - advice is optional; any client failure degrades to none
            logger.warning("LLM client raised unexpectedly", exc_info=True)
            return AdviceResult(failure=AdviceFailure.UPSTREAM_ERROR)

        if not isinstance(payload, dict):
            return AdviceResult(failure=AdviceFailure.UNPARSABLE)

        raw_tier = payload.get("tier")
        proposed = raw_tier if isinstance(raw_tier, str) else None

        try:
            advice = LLMAdvice.model_validate(payload)
        except ValidationError:
            return AdviceResult(failure=AdviceFailure.INVALID_SCHEMA, proposed_tier=proposed)

        if allowed is not None and advice.tier not in allowed:
            return AdviceResult(failure=AdviceFailure.DISALLOWED_TIER, proposed_tier=advice.tier)

        advice, dropped = filter_forbidden_terms(advice)
        if dropped:
            logger.info("Dropped %d advice entries containing forbidden terms", dropped)

        return AdviceResult(advice=advice, proposed_tier=advice.tier, dropped_entries=dropped)

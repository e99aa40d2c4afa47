from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from care_nav.gcp.tiers import CareTier


class AdviceFailure(StrEnum):
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    UNPARSABLE = "unparsable"
    INVALID_SCHEMA = "invalid_schema"
    DISALLOWED_TIER = "disallowed_tier"


# Failures where the model never proposed a tier because the call itself did not complete.
TRANSPORT_FAILURES = frozenset(
    {
        AdviceFailure.UNAVAILABLE,
        AdviceFailure.TIMEOUT,
        AdviceFailure.RATE_LIMITED,
        AdviceFailure.UPSTREAM_ERROR,
    }
)


class LLMAdvice(BaseModel):
    """
    Schema for validating the model's JSON payload.

    Extra keys are ignored. A null or missing list becomes an empty list; anything else
    that does not fit rejects the whole advice.
    """

    model_config = ConfigDict(extra="ignore")

    tier: CareTier
    reasons: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    navi_messages: list[str] = Field(default_factory=list)
    questions_next: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0, strict=True)

    @field_validator("reasons", "risks", "navi_messages", "questions_next", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True)
class AdviceResult:
    """Outcome of one advice call: either `advice` or a `failure` reason, never an exception."""

    advice: LLMAdvice | None = None
    failure: AdviceFailure | None = None
    proposed_tier: str | None = None
    dropped_entries: int = 0

    @property
    def success(self) -> bool:
        return self.advice is not None

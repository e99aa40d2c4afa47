"""Reconcile the deterministic tier with the LLM's opinion.

The LLM tier wins only when it survived validation and is inside the gated tier set;
every other path falls back to the deterministic tier and records why.
"""

from __future__ import annotations

from collections.abc import Set
from dataclasses import dataclass
from typing import Literal

from care_nav.gcp.advice.schemas import TRANSPORT_FAILURES, AdviceFailure
from care_nav.gcp.tiers import DEFAULT_TIER, is_canonical, sort_tiers

AdjudicationReason = Literal[
    "deterministic_only",
    "double_missing_default",
    "llm_valid",
    "llm_timeout",
    "llm_guard_disallow",
    "llm_invalid_unknown",
]


@dataclass(frozen=True)
class AdjudicationDecision:
    tier: str
    det: str | None
    llm: str | None
    conf: float | None
    source: Literal["llm", "fallback"]
    adjudication_reason: AdjudicationReason
    allowed: tuple[str, ...]
    cognition_band: str
    support_band: str
    risky: bool


def deterministic_decision(
    *,
    det_tier: str,
    allowed_tiers: Set[str],
    cognition_band: str,
    support_band: str,
    risky: bool,
) -> AdjudicationDecision:
    """Decision recorded when the LLM path is off."""

    return AdjudicationDecision(
        tier=det_tier,
        det=det_tier,
        llm=None,
        conf=None,
        source="fallback",
        adjudication_reason="deterministic_only",
        allowed=tuple(sort_tiers(allowed_tiers)),
        cognition_band=cognition_band,
        support_band=support_band,
        risky=risky,
    )


def choose_final_tier(
    *,
    det_tier: str | None,
    allowed_tiers: Set[str],
    llm_tier: str | None,
    llm_confidence: float | None,
    cognition_band: str,
    support_band: str,
    risky: bool,
    proposed_tier: str | None = None,
    failure: AdviceFailure | None = None,
) -> AdjudicationDecision:
    """
    Pick the final tier.

    `llm_tier` is the tier of *accepted* advice. `proposed_tier` is whatever tier the
    model answered with even if the advice was rejected, so a gated-out canonical tier can
    be told apart from an invalid one.
    """

    candidate = llm_tier or proposed_tier
    allowed = tuple(sort_tiers(allowed_tiers))

    def decide(
        tier: str, source: Literal["llm", "fallback"], reason: AdjudicationReason
    ) -> AdjudicationDecision:
        return AdjudicationDecision(
            tier=tier,
            det=det_tier,
            llm=candidate,
            conf=llm_confidence,
            source=source,
            adjudication_reason=reason,
            allowed=allowed,
            cognition_band=cognition_band,
            support_band=support_band,
            risky=risky,
        )

    if not det_tier and not candidate:
        return decide(DEFAULT_TIER, "fallback", "double_missing_default")

    if llm_tier and llm_tier in allowed_tiers:
        return decide(llm_tier, "llm", "llm_valid")

    reason: AdjudicationReason
    if candidate is None and (failure is None or failure in TRANSPORT_FAILURES):
        reason = "llm_timeout"
    elif is_canonical(candidate) and candidate not in allowed_tiers:
        reason = "llm_guard_disallow"
    else:
        reason = "llm_invalid_unknown"

    return decide(det_tier or DEFAULT_TIER, "fallback", reason)

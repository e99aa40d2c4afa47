"""Band classification and tier gating.

The cognitive gate controls eligibility for the two memory-care tiers; the optional
behavior gate additionally blocks memory care when the bands alone point there but no
risky behavior was reported. Gates only ever remove tiers from the allowed set.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final, Literal

from care_nav.gcp.coercion import lower_str, str_list
from care_nav.gcp.tiers import CARE_TIER_ORDER, MEMORY_CARE_TIERS

logger = logging.getLogger("care_nav.gcp")

CognitionBand = Literal["none", "mild", "moderate", "high"]
SupportBand = Literal["low", "moderate", "high", "24h"]

COGNITIVE_HIGH_RISK: Final[frozenset[str]] = frozenset(
    {
        "wandering",
        "elopement",
        "aggression",
        "severe_sundowning",
        "severe_cognitive_risk",
        "memory_support",
    }
)

DX_CONFIRMED: Final[str] = "dx_yes"


@dataclass(frozen=True)
class GatePolicy:
    """Read-only gating switches, resolved from settings once per request."""

    behavior_gate_enabled: bool = False


@dataclass(frozen=True)
class GateOutcome:
    allowed_tiers: frozenset[str]
    cognition_band: CognitionBand
    support_band: SupportBand
    routing_support_band: SupportBand
    passes_cognitive_gate: bool
    behavior_gate_applied: bool
    risky_behaviors: bool


def _behaviors(answers: Mapping[str, Any]) -> set[str]:
    return {b.strip().lower() for b in str_list(answers.get("behaviors"))}


def _flag_set(flags: Iterable[str]) -> set[str]:
    return {f.lower() for f in flags if isinstance(f, str)}


def has_risky_behaviors(answers: Mapping[str, Any], flags: Iterable[str]) -> bool:
    """True when a high-risk behavior appears in the answers or in the collected flags."""

    evidence = _behaviors(answers) | _flag_set(flags)
    return not COGNITIVE_HIGH_RISK.isdisjoint(evidence)


def passes_cognitive_gate(answers: Mapping[str, Any], flags: Iterable[str]) -> bool:
    # An absent diagnosis answer fails the gate, same as an explicit "no".
    if lower_str(answers.get("cognitive_dx_confirm")) != DX_CONFIRMED:
        return False
    if lower_str(answers.get("memory_changes")) in {"moderate", "severe"}:
        return True
    return has_risky_behaviors(answers, flags)


def cognition_band(answers: Mapping[str, Any]) -> CognitionBand:
    memory = lower_str(answers.get("memory_changes"))
    risky_count = sum(
        1 for b in str_list(answers.get("behaviors")) if b.strip().lower() in COGNITIVE_HIGH_RISK
    )

    if memory == "severe" or risky_count >= 2:
        return "high"
    if memory == "moderate" or risky_count >= 1:
        return "moderate"
    if memory == "mild":
        return "mild"
    return "none"


def support_band(answers: Mapping[str, Any]) -> SupportBand:
    badls = len(str_list(answers.get("badls")))
    iadls = len(str_list(answers.get("iadls")))
    mobility = lower_str(answers.get("mobility")) or lower_str(answers.get("mobility_status"))
    falls = lower_str(answers.get("falls"))
    meds = lower_str(answers.get("meds_complexity"))

    if mobility in {"wheelchair", "bedbound"} or (badls >= 3 and falls == "multiple"):
        return "24h"
    if badls >= 2 or (mobility in {"walker", "cane"} and falls in {"one", "multiple"}):
        return "high"
    if iadls >= 2 or badls >= 1 or meds in {"moderate", "complex"}:
        return "moderate"
    return "low"


def routing_band(band: SupportBand) -> SupportBand:
    """The tier map has no 24h column; 24h support routes as high."""

    return "high" if band == "24h" else band


def apply_gates(
    answers: Mapping[str, Any],
    flags: Iterable[str],
    *,
    policy: GatePolicy,
) -> GateOutcome:
    flag_list = list(flags)
    allowed = set(CARE_TIER_ORDER)

    cog = cognition_band(answers)
    sup = support_band(answers)
    sup_routing = routing_band(sup)
    risky = has_risky_behaviors(answers, flag_list)

    gate_passed = passes_cognitive_gate(answers, flag_list)
    if not gate_passed:
        allowed -= MEMORY_CARE_TIERS
        logger.debug("Cognitive gate failed; memory care tiers removed")

    behavior_gate = (
        policy.behavior_gate_enabled and cog == "moderate" and sup_routing == "high" and not risky
    )
    if behavior_gate:
        allowed -= MEMORY_CARE_TIERS
        logger.debug("Behavior gate active (moderate x high without risky behaviors)")

    return GateOutcome(
        allowed_tiers=frozenset(allowed),
        cognition_band=cog,
        support_band=sup,
        routing_support_band=sup_routing,
        passes_cognitive_gate=gate_passed,
        behavior_gate_applied=behavior_gate,
        risky_behaviors=risky,
    )

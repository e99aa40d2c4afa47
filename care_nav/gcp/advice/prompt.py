from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from care_nav.gcp.coercion import coerce_number, str_list
from care_nav.gcp.tiers import CANONICAL_TIERS, sort_tiers

FORBIDDEN_TERMS: tuple[str, ...] = ("skilled nursing", "independent living")

SYSTEM_PROMPT = """You are Navi, an empathetic assistant helping families with senior care planning recommendations.

Your role is to provide contextual, evidence-based care tier recommendations based on the user's situation.

ALLOWED CARE TIERS ONLY:
- none (no care needed yet)
- in_home (aging at home with support services)
- assisted_living (residential community with daily assistance)
- memory_care (specialized dementia/Alzheimer's care in secure setting)
- memory_care_high_acuity (advanced memory care with intensive supervision)

STRICTLY FORBIDDEN:
- NEVER use the terms "skilled nursing" or "independent living"
- NEVER suggest care tiers outside the allowed list above
- NEVER use "nursing home", "SNF" or any other name for a nursing-home facility

OUTPUT REQUIREMENTS:
- Output STRICT JSON matching the required schema, no extra keys, no prose outside the JSON
- Your recommendation must be one of the 5 allowed tiers above
- Reasons must be short (1 sentence), factual, traceable to context fields
- Navi messages should be warm, empathetic, actionable (1-2 sentences each)

RESPONSE FORMAT (strict JSON):
{
  "tier": "assisted_living",
  "reasons": ["Short factual reason 1", "Short factual reason 2"],
  "risks": ["Risk to consider 1"],
  "navi_messages": ["Warm message 1"],
  "questions_next": ["Clarifying question 1?"],
  "confidence": 0.85
}"""

DEVELOPER_PROMPT = """DEVELOPER INSTRUCTIONS:

1. A deterministic engine validates your tier; align with the facts provided.
2. If uncertain between two tiers, select the closest allowed tier and add at most one clarifying question in questions_next.
3. Base your recommendation on mobility and fall risk, ADL/IADL challenges (badls, iadls), memory changes and behaviors, medication complexity, social isolation, living situation and partner support.
4. Confidence: 0.9-1.0 clear indicators; 0.7-0.89 good fit with minor uncertainty; 0.5-0.69 moderate fit; below 0.5 insufficient information.
5. Your recommendation is advisory; the deterministic engine has final authority."""


def _first(answers: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = answers.get(key)
        if value not in (None, "", []):
            return value
    return None


def build_advice_context(answers: Mapping[str, Any], flags: Iterable[str]) -> dict[str, Any]:
    """
    Minimal structured context for the model.

    Only categorical questionnaire fields are forwarded; free text is never sent.
    Both the engine's question ids and their older aliases are read.
    """

    move = _first(answers, "move_preference", "move_timeline")
    partner = _first(answers, "has_partner")
    return {
        "age_range": _first(answers, "age_range") or "unknown",
        "living_situation": _first(answers, "living_situation") or "unknown",
        "has_partner": partner is True or (isinstance(partner, str) and partner.lower() == "yes"),
        "meds_complexity": _first(answers, "meds_complexity", "medication_management") or "simple",
        "mobility": _first(answers, "mobility", "mobility_status") or "independent",
        "falls": _first(answers, "falls", "fall_risk") or "no_falls",
        "badls": str_list(_first(answers, "badls", "adl_challenges")),
        "iadls": str_list(_first(answers, "iadls", "iadl_challenges")),
        "memory_changes": _first(answers, "memory_changes", "memory_concerns") or "no_changes",
        "behaviors": str_list(_first(answers, "behaviors", "behavior_concerns")),
        "isolation": _first(answers, "isolation", "social_isolation") or "minimal",
        "move_preference": None if move is None else coerce_number(move),
        "flags": list(flags),
    }


def build_advice_prompts(
    *,
    context: Mapping[str, Any],
    allowed_tiers: Iterable[str] | None = None,
) -> tuple[str, str]:
    """
    Create (system_prompt, user_prompt) for tier advice.

    When gating narrowed the tier set, the restriction is appended to the system
    prompt as a hard constraint.
    """

    system_prompt = f"{SYSTEM_PROMPT}\n\n{DEVELOPER_PROMPT}"

    allowed = sort_tiers(allowed_tiers or ())
    if allowed and set(allowed) != CANONICAL_TIERS:
        system_prompt += (
            "\n\nIMPORTANT: Due to cognitive assessment results, you must choose ONE tier "
            f"from this restricted list ONLY: {', '.join(allowed)}"
        )

    user_prompt = (
        "USER CONTEXT (JSON):\n\n"
        f"{json.dumps(dict(context), ensure_ascii=False, indent=2)}\n\n"
        "Based on this context, provide your care tier recommendation following the strict "
        "JSON format specified in the system prompt.\n"
        "Remember: Only use the 5 allowed tiers. Never mention skilled nursing or independent living."
    )

    return system_prompt, user_prompt


def contains_forbidden_term(text: str) -> bool:
    lowered = text.lower()
    return any(term in lowered for term in FORBIDDEN_TERMS)

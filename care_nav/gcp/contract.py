"""Builders for the outward CareRecommendation contract pieces."""

from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Iterable, Mapping
from typing import Any

from care_nav.gcp.coercion import coerce_number
from care_nav.gcp.schemas import DerivedOut, FlagOut, NextStep, RawScores, TierRanking
from care_nav.gcp.tiers import CARE_TIER_ORDER, tier_midpoint

RULE_SET_ID = "standard_2025_q4"
DEFAULT_VERSION = "v2025.10"
SCHEMA_VERSION = 2

NEXT_PRODUCT_CONFIDENCE = 0.7
MOVE_FLEXIBLE_AT = 3

_DEFAULT_FLAG_DESCRIPTION = "Important consideration from your answers."
_DEFAULT_FLAG_PRIORITY = 99

FlagMetadata = Mapping[str, Mapping[str, Any]]


def build_tier_rankings(total_score: float, winning_tier: str) -> list[TierRanking]:
    """All five tiers: the winner at its true score, the rest at their range midpoints."""

    rankings = [
        TierRanking(
            tier=tier,
            score=round(total_score if tier == winning_tier else tier_midpoint(tier), 1),
        )
        for tier in CARE_TIER_ORDER
    ]
    # sorted() is stable, so ties keep acuity order.
    return sorted(rankings, key=lambda r: r.score, reverse=True)


def _titleize(flag_id: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in flag_id.replace("_", " ").split(" "))


def _flag_priority(raw: Any) -> int:
    """Metadata priority as an int; missing or non-numeric values sort last."""

    if isinstance(raw, bool):
        return _DEFAULT_FLAG_PRIORITY
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return _DEFAULT_FLAG_PRIORITY
    return int(number) if math.isfinite(number) else _DEFAULT_FLAG_PRIORITY


def build_flag_objects(flag_ids: Iterable[str], metadata: FlagMetadata) -> list[FlagOut]:
    flags: list[FlagOut] = []
    for flag_id in flag_ids:
        meta = metadata.get(flag_id)
        if not isinstance(meta, Mapping):
            meta = {}
        flags.append(
            FlagOut(
                id=flag_id,
                label=meta.get("label") or _titleize(flag_id),
                description=meta.get("description") or _DEFAULT_FLAG_DESCRIPTION,
                tone=meta.get("tone") or "info",
                priority=_flag_priority(meta.get("priority")),
            )
        )
    return sorted(flags, key=lambda f: (f.priority, f.id))


def determine_next_product(tier: str, confidence: float) -> str:
    if confidence < NEXT_PRODUCT_CONFIDENCE or tier == "none":
        return "gcp"
    return "cost_planner"


def build_next_step(tier: str, confidence: float) -> NextStep:
    if determine_next_product(tier, confidence) == "cost_planner":
        return NextStep(
            product="cost_planner",
            label="Estimate Care Costs",
            description="Use Cost Planner to understand monthly costs and affordability.",
        )
    return NextStep(
        product="gcp",
        label="Review Guided Care Plan",
        description="Provide more detail so Navi can refine this recommendation.",
    )


def build_derived(answers: Mapping[str, Any]) -> DerivedOut:
    raw = answers.get("move_preference")
    if raw is None:
        raw = answers.get("move_timeline")
    if raw is None:
        return DerivedOut()
    preference = coerce_number(raw)
    return DerivedOut(move_preference=preference, is_move_flexible=preference >= MOVE_FLEXIBLE_AT)


def snapshot_id(answers: Mapping[str, Any]) -> str:
    """First 16 hex chars of SHA-256 over the compact JSON encoding of the answers."""

    encoded = json.dumps(dict(answers), ensure_ascii=False, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def build_raw_scores(total_score: float, by_category: Mapping[str, float]) -> RawScores:
    return RawScores(
        total_score=round(total_score, 1),
        cognitive_score=round(by_category.get("cognition", 0.0), 1),
        adl_score=round(by_category.get("adl", 0.0), 1),
        safety_score=round(by_category.get("safety", 0.0), 1),
        mobility_score=round(by_category.get("mobility", 0.0), 1),
    )

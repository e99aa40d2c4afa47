from __future__ import annotations

import math

from care_nav.gcp.scoring import ScoringDetails
from care_nav.gcp.tiers import TIER_LABELS, TIER_THRESHOLDS

MAX_RATIONALE_LINES = 6
TOP_SECTIONS = 3
NO_CARE_CLOSING = "✓ No formal care is needed right now. Return if circumstances change."


def clamp(value: float, low: float, high: float) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def deterministic_confidence(details: ScoringDetails, total_score: float, tier: str) -> float:
    """
    Blend answer completeness with how far the score sits from its tier's boundaries.

    A score outside the tier's range (the tier came from the band map or a fallback)
    contributes nothing for boundary distance.
    """

    completeness = details.required_answered / max(details.required_total, 1)
    lower, upper = TIER_THRESHOLDS.get(tier, (0, 1))
    distance = min(total_score - lower, upper - total_score)
    boundary = min(distance / 3, 1.0)
    return clamp(0.6 * completeness + 0.4 * boundary, 0.5, 0.99)


def _section_title(section_id: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in section_id.replace("_", " ").split(" "))


def build_rationale(details: ScoringDetails, tier: str, total_score: float) -> list[str]:
    lines = [
        f"Based on {round_half_up(total_score)} points, we recommend: {TIER_LABELS.get(tier, tier)}"
    ]

    ranked = sorted(details.by_section.items(), key=lambda item: item[1].score, reverse=True)
    for section_id, section in ranked[:TOP_SECTIONS]:
        if section.score <= 0:
            continue
        lines.append(f"{_section_title(section_id)}: {round_half_up(section.score)} points")
        top = max(section.details, key=lambda d: d.score, default=None)
        if top is not None and top.score > 0:
            lines.append(f"• {top.answer}")

    if tier == "none":
        lines.append(NO_CARE_CLOSING)

    return lines[:MAX_RATIONALE_LINES]

"""Canonical care tiers, their score ranges and display metadata."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final, Literal

CareTier = Literal[
    "none",
    "in_home",
    "assisted_living",
    "memory_care",
    "memory_care_high_acuity",
]

# Ascending acuity. Every ordering of tiers in the contract follows this tuple.
CARE_TIER_ORDER: Final[tuple[CareTier, ...]] = (
    "none",
    "in_home",
    "assisted_living",
    "memory_care",
    "memory_care_high_acuity",
)
CANONICAL_TIERS: Final[frozenset[str]] = frozenset(CARE_TIER_ORDER)

MEMORY_CARE_TIERS: Final[frozenset[str]] = frozenset({"memory_care", "memory_care_high_acuity"})

TIER_THRESHOLDS: Final[dict[str, tuple[int, int]]] = {
    "none": (0, 8),
    "in_home": (9, 16),
    "assisted_living": (17, 24),
    "memory_care": (25, 39),
    "memory_care_high_acuity": (40, 100),
}

DEFAULT_TIER: Final[CareTier] = "assisted_living"

# Used when neither the tier map nor the score tier is allowed.
FALLBACK_PREFERENCE: Final[tuple[CareTier, ...]] = (
    "assisted_living",
    "in_home",
    "none",
    "memory_care",
    "memory_care_high_acuity",
)

TIER_LABELS: Final[dict[str, str]] = {
    "none": "No Care Needed",
    "in_home": "In-Home Care",
    "assisted_living": "Assisted Living",
    "memory_care": "Memory Care",
    "memory_care_high_acuity": "Memory Care (High Acuity)",
}

TIER_DESCRIPTIONS: Final[dict[str, str]] = {
    "none": "Managing well independently; no formal care is needed yet.",
    "in_home": "Needs regular assistance at home from in-home support services.",
    "assisted_living": "Needs help with daily activities in a supportive residential community.",
    "memory_care": "Needs specialized dementia or Alzheimer's support in a secure setting.",
    "memory_care_high_acuity": "Needs advanced memory care with intensive, around-the-clock supervision.",
}


def is_canonical(tier: object) -> bool:
    return isinstance(tier, str) and tier in CANONICAL_TIERS


def tier_from_score(score: float) -> CareTier:
    """Bucket a total score into a tier.

    The ranges are contiguous: a score belongs to the first tier whose upper bound it
    does not exceed. Negative scores map to "none", scores above 100 to the top tier.
    """

    for tier in CARE_TIER_ORDER:
        _, upper = TIER_THRESHOLDS[tier]
        if score <= upper:
            return tier
    return "memory_care_high_acuity"


def tier_midpoint(tier: str) -> float:
    lower, upper = TIER_THRESHOLDS[tier]
    return (lower + upper) / 2


def sort_tiers(tiers: Iterable[str]) -> list[str]:
    """Sort canonical tiers by acuity; unknown values are dropped."""

    present = set(tiers)
    return [tier for tier in CARE_TIER_ORDER if tier in present]

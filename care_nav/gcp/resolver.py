from __future__ import annotations

import logging
from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import Literal

from care_nav.gcp.tiers import DEFAULT_TIER, FALLBACK_PREFERENCE, is_canonical, tier_from_score

logger = logging.getLogger("care_nav.gcp")

TierMap = Mapping[str, Mapping[str, str | None]]
ResolutionStep = Literal["tier_map", "score", "fallback", "default"]


@dataclass(frozen=True)
class DeterministicTier:
    tier: str
    step: ResolutionStep
    tier_from_map: str | None
    tier_from_score: str


def lookup_tier_map(tier_map: TierMap, cognition: str | None, support: str | None) -> str | None:
    if not cognition or not support:
        return None
    row = tier_map.get(cognition)
    # A missing or malformed row falls through to the score-based tier.
    if not isinstance(row, Mapping):
        return None
    mapped = row.get(support)
    return mapped if is_canonical(mapped) else None


def resolve_deterministic_tier(
    *,
    tier_map: TierMap,
    cognition: str | None,
    support: str | None,
    total_score: float,
    allowed_tiers: Set[str],
) -> DeterministicTier:
    """Pick the deterministic tier: tier map, then score range, then fallback preference."""

    from_map = lookup_tier_map(tier_map, cognition, support)
    from_score = tier_from_score(total_score)

    if from_map is not None and from_map in allowed_tiers:
        tier, step = from_map, "tier_map"
    elif from_score in allowed_tiers:
        tier, step = from_score, "score"
    else:
        candidate = next((t for t in FALLBACK_PREFERENCE if t in allowed_tiers), None)
        tier, step = (candidate, "fallback") if candidate else (DEFAULT_TIER, "default")

    logger.debug("Deterministic tier selected", extra={"tier": tier, "reason": step})
    return DeterministicTier(tier=tier, step=step, tier_from_map=from_map, tier_from_score=from_score)

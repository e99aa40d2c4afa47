from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from care_nav.core.metrics import gcp_recommendations_total
from care_nav.gcp.adjudication import (
    AdjudicationDecision,
    choose_final_tier,
    deterministic_decision,
)
from care_nav.gcp.advice.schemas import LLMAdvice
from care_nav.gcp.advice.service import GcpAdviceService
from care_nav.gcp.config_store import GcpConfig
from care_nav.gcp.contract import (
    DEFAULT_VERSION,
    RULE_SET_ID,
    SCHEMA_VERSION,
    build_derived,
    build_flag_objects,
    build_next_step,
    build_raw_scores,
    build_tier_rankings,
    determine_next_product,
    snapshot_id,
)
from care_nav.gcp.explain import build_rationale, clamp, deterministic_confidence
from care_nav.gcp.gating import GatePolicy, apply_gates
from care_nav.gcp.resolver import resolve_deterministic_tier
from care_nav.gcp.schemas import (
    AdjudicationOut,
    BandsSnapshot,
    CareRecommendation,
    LLMAdviceOut,
    LLMMode,
)
from care_nav.gcp.scoring import collect_flags, score_module
from care_nav.gcp.tiers import sort_tiers

logger = logging.getLogger("care_nav.gcp")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class GcpRecommendationService:
    """
    Turn one questionnaire submission into a CareRecommendation.

    Everything except the optional advice call is a pure function of the answers and the
    shared, read-only configuration; the instance holds no per-request state.
    """

    def __init__(
        self,
        *,
        config: GcpConfig,
        advisor: GcpAdviceService,
        policy: GatePolicy,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._config = config
        self._advisor = advisor
        self._policy = policy
        self._clock = clock

    async def recommend(
        self,
        *,
        answers: Mapping[str, Any] | None,
        llm_mode: LLMMode,
        request_id: str | None = None,
    ) -> CareRecommendation:
        answers = dict(answers or {})
        module = self._config.module

        scores = score_module(answers, module)
        flag_ids = collect_flags(answers, module)
        gates = apply_gates(answers, flag_ids, policy=self._policy)

        det = resolve_deterministic_tier(
            tier_map=self._config.tier_map,
            cognition=gates.cognition_band,
            support=gates.routing_support_band,
            total_score=scores.total_score,
            allowed_tiers=gates.allowed_tiers,
        )

        advice: LLMAdvice | None = None
        if llm_mode == "off":
            decision = deterministic_decision(
                det_tier=det.tier,
                allowed_tiers=gates.allowed_tiers,
                cognition_band=gates.cognition_band,
                support_band=gates.routing_support_band,
                risky=gates.risky_behaviors,
            )
        else:
            result = await self._advisor.advise(
                answers=answers,
                flags=flag_ids,
                mode=llm_mode,
                allowed_tiers=gates.allowed_tiers,
            )
            advice = result.advice
            decision = choose_final_tier(
                det_tier=det.tier,
                allowed_tiers=gates.allowed_tiers,
                llm_tier=advice.tier if advice else None,
                llm_confidence=advice.confidence if advice else None,
                cognition_band=gates.cognition_band,
                support_band=gates.routing_support_band,
                risky=gates.risky_behaviors,
                proposed_tier=result.proposed_tier,
                failure=result.failure,
            )

        self._log_decision(decision, request_id=request_id)

        final_tier = decision.tier
        if advice is not None:
            confidence = clamp(advice.confidence, 0.0, 1.0)
        else:
            confidence = deterministic_confidence(scores.details, scores.total_score, final_tier)
        confidence = round(confidence, 2)

        now = self._clock()
        timestamp = _iso(now)
        gcp_recommendations_total.labels(tier=final_tier, source=decision.source).inc()

        return CareRecommendation(
            tier=final_tier,
            tier_score=round(scores.total_score, 1),
            tier_rankings=build_tier_rankings(scores.total_score, final_tier),
            confidence=confidence,
            flags=build_flag_objects(flag_ids, self._config.flag_metadata),
            rationale=build_rationale(scores.details, final_tier, scores.total_score),
            suggested_next_product=determine_next_product(final_tier, confidence),
            derived=build_derived(answers),
            allowed_tiers=sort_tiers(gates.allowed_tiers),
            generated_at=timestamp,
            version=(module.module.version if module.module else None) or DEFAULT_VERSION,
            input_snapshot_id=snapshot_id(answers),
            rule_set=RULE_SET_ID,
            next_step=build_next_step(final_tier, confidence),
            status="complete",
            last_updated=timestamp,
            needs_refresh=False,
            schema_version=SCHEMA_VERSION,
            assessment_id=f"assess_{int(now.timestamp() * 1000)}",
            user_inputs=copy.deepcopy(answers),
            score_breakdown=dict(scores.by_category),
            adjudication=_adjudication_out(decision),
            llm_advice=LLMAdviceOut(**advice.model_dump()) if advice else None,
            timestamp=timestamp,
            recommendation=final_tier,
            raw_scores=build_raw_scores(scores.total_score, scores.by_category),
        )

    def _log_decision(self, decision: AdjudicationDecision, *, request_id: str | None) -> None:
        extra = {
            "request_id": request_id,
            "tier": decision.tier,
            "deterministic_tier": decision.det,
            "llm_tier": decision.llm,
            "source": decision.source,
            "reason": decision.adjudication_reason,
            "correlation_id": uuid.uuid4().hex[:12],
        }
        if decision.source == "llm" and decision.tier != decision.det:
            logger.warning("LLM overrode deterministic tier", extra=extra)
        logger.info("Recommendation adjudicated", extra=extra)


def _adjudication_out(decision: AdjudicationDecision) -> AdjudicationOut:
    return AdjudicationOut(
        det=decision.det,
        llm=decision.llm,
        conf=decision.conf,
        source=decision.source,
        adjudication_reason=decision.adjudication_reason,
        allowed=list(decision.allowed),
        bands=BandsSnapshot(cog=decision.cognition_band, sup=decision.support_band),
        risky=decision.risky,
    )

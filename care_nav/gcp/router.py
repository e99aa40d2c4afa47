from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from care_nav.api.schemas import ErrorOut
from care_nav.core.llm.deps import get_openai_client
from care_nav.core.settings import Settings, get_settings
from care_nav.gcp.advice.service import GcpAdviceService, normalize_llm_mode
from care_nav.gcp.config_store import GcpConfigStore, get_config_store
from care_nav.gcp.gating import GatePolicy
from care_nav.gcp.schemas import CareRecommendation, RecommendationRequest, TierInfoOut
from care_nav.gcp.service import GcpRecommendationService
from care_nav.gcp.tiers import CARE_TIER_ORDER, TIER_DESCRIPTIONS, TIER_LABELS, TIER_THRESHOLDS

router = APIRouter(prefix="/gcp", tags=["gcp"])


@router.post(
    "/submit",
    response_model=CareRecommendation,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorOut, "description": "Configuration unavailable"}},
    summary="Submit a Guided Care Plan assessment",
)
async def submit_assessment(
    payload: RecommendationRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: GcpConfigStore = Depends(get_config_store),
    openai_client=Depends(get_openai_client),
) -> CareRecommendation:
    """
    Score the answers and return a care-tier recommendation.

    Empty answers are accepted and produce the safe default path. LLM failures never
    fail the request; the `adjudication` record says which path was taken.
    """

    config = store.get()
    llm_mode = normalize_llm_mode(payload.llm_mode, default=settings.gcp_llm_mode)
    advisor = GcpAdviceService(
        llm_client=openai_client,
        timeout_seconds=float(settings.openai_timeout_seconds),
    )
    svc = GcpRecommendationService(
        config=config,
        advisor=advisor,
        policy=GatePolicy(behavior_gate_enabled=settings.behavior_gate_enabled),
    )
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    return await svc.recommend(answers=payload.answers, llm_mode=llm_mode, request_id=request_id)


@router.get("/tiers", response_model=dict[str, TierInfoOut], summary="List care tiers")
async def list_tiers() -> dict[str, TierInfoOut]:
    return {
        tier: TierInfoOut(
            label=TIER_LABELS[tier],
            description=TIER_DESCRIPTIONS[tier],
            score_range=TIER_THRESHOLDS[tier],
        )
        for tier in CARE_TIER_ORDER
    }

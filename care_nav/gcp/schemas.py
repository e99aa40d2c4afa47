from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from care_nav.gcp.coercion import coerce_number
from care_nav.gcp.tiers import CareTier

LLMMode = Literal["off", "shadow", "assist"]
AdjudicationSource = Literal["llm", "fallback"]

_MULTI_SELECT = {"multiple", "multi"}
_MULTI_TYPES = {"multi_select", "multiselect", "checkbox", "checkboxes"}
_NUMERIC_TYPES = {"number", "numeric", "integer", "slider"}


# ---------------------------------------------------------------------------
# Module configuration (input schema, loaded once per process)
# ---------------------------------------------------------------------------


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class OptionConfig(_ConfigModel):
    value: Any
    label: str | None = None
    score: float = 0.0
    flags: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> float:
        return coerce_number(value)

    @field_validator("flags", mode="before")
    @classmethod
    def _default_flags(cls, value: Any) -> Any:
        return _none_to_list(value)


class QuestionConfig(_ConfigModel):
    id: str
    type: str = "string"
    select: str | None = None
    label: str | None = None
    required: bool = False
    options: list[OptionConfig] = Field(default_factory=list)
    score_multiplier: float | None = None
    flags: list[str] = Field(default_factory=list)

    @field_validator("options", "flags", mode="before")
    @classmethod
    def _default_lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("score_multiplier", mode="before")
    @classmethod
    def _coerce_multiplier(cls, value: Any) -> float | None:
        return None if value is None else coerce_number(value)

    @property
    def is_multi_select(self) -> bool:
        return (self.select or "").lower() in _MULTI_SELECT or self.type.lower() in _MULTI_TYPES

    @property
    def is_numeric(self) -> bool:
        return self.type.lower() in _NUMERIC_TYPES

    @property
    def display_label(self) -> str:
        return self.label or self.id


class SectionConfig(_ConfigModel):
    id: str
    title: str | None = None
    type: str | None = None
    questions: list[QuestionConfig] | None = None

    @property
    def is_informational(self) -> bool:
        return self.type == "info" or not self.questions


class ModuleMeta(_ConfigModel):
    id: str | None = None
    name: str | None = None
    version: str | None = None


class ModuleConfig(_ConfigModel):
    module: ModuleMeta | None = None
    sections: list[SectionConfig] = Field(default_factory=list)

    def scored_sections(self) -> list[SectionConfig]:
        return [s for s in self.sections if not s.is_informational]


# ---------------------------------------------------------------------------
# API request / response
# ---------------------------------------------------------------------------


class RecommendationRequest(BaseModel):
    answers: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw questionnaire answers keyed by question id.",
        examples=[{"memory_changes": "moderate", "badls": ["bathing", "dressing"]}],
    )
    llm_mode: str | None = Field(
        default=None,
        description=(
            "LLM advisory mode: off|shadow|assist. Omit to use the server default; "
            "unknown values behave as off."
        ),
    )


class _ContractModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TierRanking(_ContractModel):
    tier: CareTier
    score: float


class FlagOut(_ContractModel):
    id: str
    label: str
    description: str
    tone: str = "info"
    priority: int = 99


class NextStep(_ContractModel):
    product: str
    label: str
    description: str


class BandsSnapshot(_ContractModel):
    cog: str
    sup: str


class AdjudicationOut(_ContractModel):
    """Audit record of how the final tier was chosen. Always present in the contract."""

    det: CareTier | None
    llm: str | None = None
    conf: float | None = None
    source: AdjudicationSource
    adjudication_reason: str
    allowed: list[CareTier]
    bands: BandsSnapshot
    risky: bool


class LLMAdviceOut(_ContractModel):
    tier: CareTier
    reasons: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    navi_messages: list[str] = Field(default_factory=list)
    questions_next: list[str] = Field(default_factory=list)
    confidence: float


class RawScores(_ContractModel):
    total_score: float
    cognitive_score: float
    adl_score: float
    safety_score: float
    mobility_score: float


class DerivedOut(_ContractModel):
    move_preference: float | None = None
    is_move_flexible: bool | None = None


class CareRecommendation(_ContractModel):
    tier: CareTier
    tier_score: float
    tier_rankings: list[TierRanking]
    confidence: float = Field(ge=0.0, le=1.0)
    flags: list[FlagOut]
    rationale: list[str]
    suggested_next_product: str
    derived: DerivedOut
    allowed_tiers: list[CareTier]
    generated_at: str
    version: str
    input_snapshot_id: str = Field(min_length=16, max_length=16)
    rule_set: str
    next_step: NextStep
    status: str
    last_updated: str
    needs_refresh: bool
    schema_version: int
    assessment_id: str
    user_inputs: dict[str, Any]
    score_breakdown: dict[str, float]
    adjudication: AdjudicationOut
    llm_advice: LLMAdviceOut | None = None
    timestamp: str

    # Legacy aliases kept for consumers of the previous contract.
    recommendation: CareTier
    raw_scores: RawScores


class TierInfoOut(BaseModel):
    label: str
    description: str
    score_range: tuple[int, int]

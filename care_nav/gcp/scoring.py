"""Deterministic questionnaire scoring and risk-flag collection.

Both walks share the same view of an answer: the raw value is first normalised against
the question's declaration into a tagged variant (`MultiChoice`, `SingleChoice`,
`NumericAnswer`, `FreeFormAnswer`), then matched against the question's options.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from care_nav.gcp.coercion import coerce_number
from care_nav.gcp.schemas import ModuleConfig, OptionConfig, QuestionConfig


class ScoreCategory(StrEnum):
    COGNITION = "cognition"
    ADL = "adl"
    SAFETY = "safety"
    MOBILITY = "mobility"
    GENERAL = "general"


# Checked in order; the first keyword found in the question id wins.
_CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], ScoreCategory], ...] = (
    (("memory", "cogn"), ScoreCategory.COGNITION),
    (("adl", "daily"), ScoreCategory.ADL),
    (("fall", "safety"), ScoreCategory.SAFETY),
    (("mobil",), ScoreCategory.MOBILITY),
)


def infer_category(question_id: str) -> ScoreCategory:
    """Heuristic category for a question, from keywords in its id.

    Ids matching no keyword fall into GENERAL.
    """

    qid = (question_id or "").lower()
    for keywords, category in _CATEGORY_KEYWORDS:
        if any(keyword in qid for keyword in keywords):
            return category
    return ScoreCategory.GENERAL


def has_answer(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return any(has_answer(item) for item in value)
    return isinstance(value, (bool, int, float))


# ---------------------------------------------------------------------------
# Answer variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MultiChoice:
    values: tuple[Any, ...]


@dataclass(frozen=True)
class SingleChoice:
    value: Any


@dataclass(frozen=True)
class NumericAnswer:
    value: float


@dataclass(frozen=True)
class FreeFormAnswer:
    value: Any


Answer = MultiChoice | SingleChoice | NumericAnswer | FreeFormAnswer


def normalize_answer(question: QuestionConfig, raw: Any) -> Answer | None:
    """Read a raw answer as the variant its question declares. Unanswered -> None.

    A list is always a multi-choice; a scalar given to a multi-select question counts as a
    single selection. Numeric questions without options read malformed input as 0.
    """

    if not has_answer(raw):
        return None
    if isinstance(raw, (list, tuple)):
        return MultiChoice(values=tuple(item for item in raw if has_answer(item)))
    if question.is_multi_select:
        return MultiChoice(values=(raw,))
    if question.options:
        return SingleChoice(value=raw)
    if question.is_numeric:
        return NumericAnswer(value=coerce_number(raw))
    return FreeFormAnswer(value=raw)


def selected_options(question: QuestionConfig, answer: Answer) -> list[OptionConfig]:
    """Options chosen by an answer, in configuration order; each option at most once."""

    if isinstance(answer, MultiChoice):
        chosen = answer.values
        return [opt for opt in question.options if opt.value in chosen]
    if isinstance(answer, SingleChoice):
        for opt in question.options:
            if opt.value == answer.value:
                return [opt]
    return []


# ---------------------------------------------------------------------------
# Score extraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoreEntry:
    question_id: str
    answer: Any
    score: float
    category: ScoreCategory
    flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class SectionDetail:
    question: str
    answer: str
    score: float


@dataclass
class SectionScore:
    score: float = 0.0
    details: list[SectionDetail] = field(default_factory=list)


@dataclass
class ScoringDetails:
    by_section: dict[str, SectionScore] = field(default_factory=dict)
    by_question: dict[str, float] = field(default_factory=dict)
    required_answered: int = 0
    required_total: int = 0
    optional_answered: int = 0


@dataclass
class ScoreResult:
    total_score: float
    details: ScoringDetails
    by_category: dict[str, float]
    entries: list[ScoreEntry]


def score_module(answers: Mapping[str, Any], module: ModuleConfig) -> ScoreResult:
    details = ScoringDetails()
    by_category: dict[str, float] = {category.value: 0.0 for category in ScoreCategory}
    entries: list[ScoreEntry] = []
    total = 0.0

    for section in module.scored_sections():
        section_score = SectionScore()

        for question in section.questions or []:
            answer = normalize_answer(question, answers.get(question.id))
            answered = answer is not None

            if question.required:
                details.required_total += 1
                if answered:
                    details.required_answered += 1
            elif answered:
                details.optional_answered += 1

            if answer is None:
                details.by_question[question.id] = 0.0
                continue

            category = infer_category(question.id)
            question_score = 0.0

            options = selected_options(question, answer)
            for opt in options:
                question_score += opt.score
                section_score.details.append(
                    SectionDetail(
                        question=question.display_label,
                        answer=opt.label or str(opt.value),
                        score=opt.score,
                    )
                )
                entries.append(
                    ScoreEntry(
                        question_id=question.id,
                        answer=opt.value,
                        score=opt.score,
                        category=category,
                        flags=tuple(opt.flags),
                    )
                )

            if (
                not options
                and isinstance(answer, NumericAnswer)
                and question.score_multiplier is not None
            ):
                score = answer.value * question.score_multiplier
                question_score += score
                entries.append(
                    ScoreEntry(
                        question_id=question.id,
                        answer=answer.value,
                        score=score,
                        category=category,
                        flags=tuple(question.flags),
                    )
                )

            by_category[category.value] += question_score
            details.by_question[question.id] = question_score
            section_score.score += question_score

        details.by_section[section.id] = section_score
        total += section_score.score

    return ScoreResult(
        total_score=total,
        details=details,
        by_category=by_category,
        entries=entries,
    )


def collect_flags(answers: Mapping[str, Any], module: ModuleConfig) -> list[str]:
    """Union of the flags on every selected option, deduplicated in first-seen order."""

    seen: dict[str, None] = {}
    for section in module.scored_sections():
        for question in section.questions or []:
            answer = normalize_answer(question, answers.get(question.id))
            if answer is None:
                continue
            for opt in selected_options(question, answer):
                for flag in opt.flags:
                    seen.setdefault(flag, None)
    return list(seen)

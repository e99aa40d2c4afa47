from __future__ import annotations

import pytest

from care_nav.gcp.gating import (
    GatePolicy,
    apply_gates,
    cognition_band,
    has_risky_behaviors,
    passes_cognitive_gate,
    routing_band,
    support_band,
)
from care_nav.gcp.tiers import CARE_TIER_ORDER, MEMORY_CARE_TIERS

NON_MEMORY_TIERS = {"none", "in_home", "assisted_living"}


def test_cognitive_gate_requires_confirmed_diagnosis() -> None:
    assert passes_cognitive_gate({"cognitive_dx_confirm": "dx_yes", "memory_changes": "severe"}, [])
    assert passes_cognitive_gate({"cognitive_dx_confirm": "DX_YES", "memory_changes": "moderate"}, [])
    assert not passes_cognitive_gate({"cognitive_dx_confirm": "dx_no", "memory_changes": "severe"}, [])


def test_cognitive_gate_absent_diagnosis_fails() -> None:
    # No diagnosis answer at all is treated the same as an explicit "no".
    assert not passes_cognitive_gate({"memory_changes": "severe", "behaviors": ["wandering"]}, [])
    assert not passes_cognitive_gate({}, [])


def test_cognitive_gate_needs_severity_or_risky_evidence() -> None:
    base = {"cognitive_dx_confirm": "dx_yes"}

    assert not passes_cognitive_gate(dict(base, memory_changes="mild"), [])
    assert passes_cognitive_gate(dict(base, behaviors=["Elopement"]), [])
    assert passes_cognitive_gate(base, ["memory_support"])
    assert not passes_cognitive_gate(dict(base, behaviors=["confusion"]), ["medication_risk"])


@pytest.mark.parametrize(
    ("answers", "expected"),
    [
        ({}, "none"),
        ({"memory_changes": "mild"}, "mild"),
        ({"memory_changes": "moderate"}, "moderate"),
        ({"memory_changes": "severe"}, "high"),
        ({"behaviors": ["wandering"]}, "moderate"),
        ({"behaviors": ["wandering", "aggression"]}, "high"),
        ({"memory_changes": "mild", "behaviors": ["confusion"]}, "mild"),
        ({"memory_changes": 3}, "none"),
    ],
)
def test_cognition_band(answers: dict, expected: str) -> None:
    assert cognition_band(answers) == expected


@pytest.mark.parametrize(
    ("answers", "expected"),
    [
        ({}, "low"),
        ({"mobility": "wheelchair"}, "24h"),
        ({"mobility_status": "bedbound"}, "24h"),
        ({"badls": ["bathing", "dressing", "eating"], "falls": "multiple"}, "24h"),
        ({"badls": ["bathing", "dressing", "eating"], "falls": "one"}, "high"),
        ({"badls": ["bathing", "dressing"]}, "high"),
        ({"mobility": "cane", "falls": "one"}, "high"),
        ({"mobility": "walker", "falls": "none"}, "low"),
        ({"iadls": ["meals", "finances"]}, "moderate"),
        ({"badls": ["bathing"]}, "moderate"),
        ({"meds_complexity": "complex"}, "moderate"),
        ({"badls": "bathing"}, "moderate"),
    ],
)
def test_support_band(answers: dict, expected: str) -> None:
    assert support_band(answers) == expected


def test_routing_band_collapses_24h() -> None:
    assert routing_band("24h") == "high"
    assert routing_band("moderate") == "moderate"


def test_risky_behaviors_from_answers_or_flags() -> None:
    assert has_risky_behaviors({"behaviors": ["aggression"]}, [])
    assert has_risky_behaviors({}, ["severe_cognitive_risk"])
    assert not has_risky_behaviors({"behaviors": ["confusion"]}, ["falls_multiple"])


def test_apply_gates_failed_cognitive_gate_removes_memory_care() -> None:
    outcome = apply_gates({"memory_changes": "severe"}, [], policy=GatePolicy())

    assert not outcome.passes_cognitive_gate
    assert outcome.allowed_tiers == NON_MEMORY_TIERS
    assert outcome.cognition_band == "high"


def test_apply_gates_passing_keeps_all_tiers() -> None:
    outcome = apply_gates(
        {"cognitive_dx_confirm": "dx_yes", "memory_changes": "severe"}, [], policy=GatePolicy()
    )

    assert outcome.allowed_tiers == set(CARE_TIER_ORDER)


def _moderate_high_answers(**extra) -> dict:
    return {
        "cognitive_dx_confirm": "dx_yes",
        "memory_changes": "moderate",
        "badls": ["bathing", "dressing"],
        **extra,
    }


def test_behavior_gate_blocks_memory_care_without_risky_behavior() -> None:
    answers = _moderate_high_answers()

    enabled = apply_gates(answers, [], policy=GatePolicy(behavior_gate_enabled=True))
    disabled = apply_gates(answers, [], policy=GatePolicy(behavior_gate_enabled=False))

    assert enabled.behavior_gate_applied
    assert enabled.allowed_tiers.isdisjoint(MEMORY_CARE_TIERS)
    assert not disabled.behavior_gate_applied
    assert MEMORY_CARE_TIERS <= disabled.allowed_tiers


def test_behavior_gate_ignored_when_risky_behavior_present() -> None:
    answers = _moderate_high_answers()

    via_flag = apply_gates(answers, ["wandering"], policy=GatePolicy(behavior_gate_enabled=True))

    assert not via_flag.behavior_gate_applied
    assert MEMORY_CARE_TIERS <= via_flag.allowed_tiers


def test_behavior_gate_only_for_moderate_cognition_and_high_support() -> None:
    answers = _moderate_high_answers(memory_changes="severe")

    outcome = apply_gates(answers, [], policy=GatePolicy(behavior_gate_enabled=True))

    assert outcome.cognition_band == "high"
    assert not outcome.behavior_gate_applied

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from care_nav.core.llm.deps import get_openai_client
from care_nav.main import create_app
from tests.gcp._helpers import (
    HIGH_ACUITY_ANSWERS,
    UNDIAGNOSED_HIGH_SCORE_ANSWERS,
    FakeLLMClient,
    advice_payload,
)


def _client_with_llm(llm_client) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_openai_client] = lambda: llm_client
    return TestClient(app)


def test_submit_returns_full_contract(client) -> None:
    res = client.post("/gcp/submit", json={"answers": HIGH_ACUITY_ANSWERS})

    assert res.status_code == 200
    body = res.json()
    assert body["tier"] == "memory_care_high_acuity"
    assert body["recommendation"] == body["tier"]
    assert body["allowed_tiers"] == [
        "none",
        "in_home",
        "assisted_living",
        "memory_care",
        "memory_care_high_acuity",
    ]
    assert body["adjudication"]["adjudication_reason"] == "deterministic_only"
    assert body["adjudication"]["bands"] == {"cog": "high", "sup": "high"}
    assert body["user_inputs"] == HIGH_ACUITY_ANSWERS
    assert body["generated_at"].endswith("Z")
    assert body["schema_version"] == 2
    assert len(body["input_snapshot_id"]) == 16
    # Absent optional fields are omitted rather than sent as null.
    assert "llm_advice" not in body
    assert "llm" not in body["adjudication"]


def test_submit_accepts_missing_answers(client) -> None:
    res = client.post("/gcp/submit", json={})

    assert res.status_code == 200
    body = res.json()
    assert body["tier"] == "none"
    assert body["allowed_tiers"] == ["none", "in_home", "assisted_living"]
    assert body["derived"] == {}


def test_submit_rejects_non_object_answers(client) -> None:
    res = client.post("/gcp/submit", json={"answers": ["memory_changes"]})

    assert res.status_code == 422


def test_submit_llm_mode_from_body() -> None:
    llm = FakeLLMClient(advice_payload(tier="memory_care", confidence=0.9))

    with _client_with_llm(llm) as client:
        res = client.post("/gcp/submit", json={"answers": HIGH_ACUITY_ANSWERS, "llm_mode": "assist"})

    body = res.json()
    assert res.status_code == 200
    assert body["tier"] == "memory_care"
    assert body["adjudication"]["source"] == "llm"
    assert body["llm_advice"]["tier"] == "memory_care"
    assert body["confidence"] == 0.9


def test_submit_llm_mode_from_feature_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEATURE_GCP_LLM_TIER", "shadow")
    llm = FakeLLMClient(advice_payload(tier="memory_care"))

    with _client_with_llm(llm) as client:
        gated = client.post("/gcp/submit", json={"answers": UNDIAGNOSED_HIGH_SCORE_ANSWERS})
        off = client.post("/gcp/submit", json={"answers": HIGH_ACUITY_ANSWERS, "llm_mode": "off"})

    assert len(llm.calls) == 1
    assert gated.json()["tier"] == "assisted_living"
    assert gated.json()["adjudication"]["adjudication_reason"] == "llm_guard_disallow"
    assert off.json()["adjudication"]["adjudication_reason"] == "deterministic_only"


def test_submit_unknown_llm_mode_behaves_as_off() -> None:
    llm = FakeLLMClient(advice_payload())

    with _client_with_llm(llm) as client:
        res = client.post("/gcp/submit", json={"answers": {}, "llm_mode": "turbo"})

    assert res.status_code == 200
    assert llm.calls == []
    assert res.json()["adjudication"]["adjudication_reason"] == "deterministic_only"


def test_submit_without_api_key_falls_back() -> None:
    app = create_app()

    with TestClient(app) as client:
        res = client.post("/gcp/submit", json={"answers": HIGH_ACUITY_ANSWERS, "llm_mode": "assist"})

    assert res.status_code == 200
    assert res.json()["adjudication"]["adjudication_reason"] == "llm_timeout"


def test_submit_behavior_gate_feature_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEATURE_GCP_MC_BEHAVIOR_GATE", "on")
    answers = {
        "cognitive_dx_confirm": "dx_yes",
        "memory_changes": "moderate",
        "badls": ["bathing", "dressing"],
    }

    with TestClient(create_app()) as client:
        res = client.post("/gcp/submit", json={"answers": answers})

    assert res.json()["tier"] == "in_home"


def test_missing_configuration_returns_500(
    monkeypatch: pytest.MonkeyPatch, tmp_path, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("GCP_MODULE_CONFIG_PATH", str(tmp_path / "missing.json"))
    caplog.set_level(logging.ERROR, logger="care_nav.config")

    with TestClient(create_app()) as client:
        res = client.post(
            "/gcp/submit",
            json={"answers": {"memory_changes": "severe"}},
            headers={"X-Request-ID": "req_cfg_001"},
        )

    assert res.status_code == 500
    assert res.json() == {"detail": "Recommendation configuration unavailable"}
    assert res.headers["x-request-id"] == "req_cfg_001"

    records = [r for r in caplog.records if r.name == "care_nav.config"]
    assert len(records) == 1
    assert records[0].__dict__["request_id"] == "req_cfg_001"
    assert "severe" not in records[0].getMessage()


def test_malformed_configuration_returns_500(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    broken = tmp_path / "tier_map.json"
    broken.write_text("[1, 2, 3]", encoding="utf-8")
    monkeypatch.setenv("GCP_TIER_MAP_PATH", str(broken))

    with TestClient(create_app()) as client:
        res = client.post("/gcp/submit", json={"answers": {}})

    assert res.status_code == 500


def test_list_tiers(client) -> None:
    res = client.get("/gcp/tiers")

    assert res.status_code == 200
    body = res.json()
    assert list(body) == [
        "none",
        "in_home",
        "assisted_living",
        "memory_care",
        "memory_care_high_acuity",
    ]
    assert body["in_home"]["label"] == "In-Home Care"
    assert body["in_home"]["score_range"] == [9, 16]


def test_null_tier_map_row_uses_score_tier(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    tier_map = tmp_path / "tier_map.json"
    tier_map.write_text('{"none": null, "high": null}', encoding="utf-8")
    monkeypatch.setenv("GCP_TIER_MAP_PATH", str(tier_map))

    with TestClient(create_app()) as client:
        res = client.post("/gcp/submit", json={"answers": {}})

    assert res.status_code == 200
    assert res.json()["tier"] == "none"

from __future__ import annotations

import pytest

from care_nav.core.settings import get_settings
from care_nav.gcp.config_store import GcpConfig, GcpConfigStore

_ENV_VARS = (
    "FEATURE_GCP_LLM_TIER",
    "FEATURE_GCP_MC_BEHAVIOR_GATE",
    "GCP_MODULE_CONFIG_PATH",
    "GCP_TIER_MAP_PATH",
    "GCP_FLAG_METADATA_PATH",
    "OPENAI_API_KEY",
    "OPENAI_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # Keep a developer's shell env or .env file from leaking into tests.
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    # Settings are cached via @lru_cache; clear so each test sees its own env.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def gcp_config() -> GcpConfig:
    """The packaged questionnaire, tier map and flag metadata."""
    return GcpConfigStore.from_settings(get_settings()).get()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from care_nav.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c

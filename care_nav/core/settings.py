from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_GCP_DATA_DIR = Path(__file__).resolve().parents[1] / "gcp" / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Guided Care Plan API"

    # Guided Care Plan configuration (JSON files, loaded once per process)
    gcp_module_config_path: str = Field(
        default=str(_GCP_DATA_DIR / "gcp_module.json"),
        validation_alias=AliasChoices("GCP_MODULE_CONFIG_PATH", "gcp_module_config_path"),
        description="Path to the questionnaire module configuration (sections/questions/options).",
    )
    gcp_tier_map_path: str = Field(
        default=str(_GCP_DATA_DIR / "gcp_tier_map.json"),
        validation_alias=AliasChoices("GCP_TIER_MAP_PATH", "gcp_tier_map_path"),
        description="Path to the cognition band x support band -> tier lookup table.",
    )
    gcp_flag_metadata_path: str = Field(
        default=str(_GCP_DATA_DIR / "gcp_flag_metadata.json"),
        validation_alias=AliasChoices("GCP_FLAG_METADATA_PATH", "gcp_flag_metadata_path"),
        description="Path to the flag id -> label/description/tone/priority metadata.",
    )

    # Feature flags
    gcp_llm_mode: str = Field(
        default="off",
        validation_alias=AliasChoices("FEATURE_GCP_LLM_TIER", "gcp_llm_mode"),
        description="Default LLM advisory mode: off|shadow|assist. Unknown values behave as off.",
    )
    gcp_mc_behavior_gate: str = Field(
        default="off",
        validation_alias=AliasChoices("FEATURE_GCP_MC_BEHAVIOR_GATE", "gcp_mc_behavior_gate"),
        description="Memory-care behavior gate: on|off.",
    )

    # LLM integration (OpenAI)
    # IMPORTANT: answers describe a person's health; prompts and outputs are never logged.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
        description="OpenAI API key. When missing, LLM advice is skipped.",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
        description="OpenAI model identifier used for tier advice.",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
        description="Base URL for OpenAI API (override for proxies/emulators).",
    )
    openai_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_SECONDS", "openai_timeout_seconds"),
        description="Hard bound for a single advice request (seconds). No retries are made.",
    )
    openai_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        validation_alias=AliasChoices("OPENAI_TEMPERATURE", "openai_temperature"),
        description="Sampling temperature; kept low for consistent advice.",
    )

    @property
    def behavior_gate_enabled(self) -> bool:
        return str(self.gcp_mc_behavior_gate).strip().lower() == "on"


@lru_cache
def get_settings() -> Settings:
    return Settings()

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import Request
from pydantic import ValidationError

from care_nav.core.settings import Settings
from care_nav.domain.exceptions import ConfigurationError
from care_nav.gcp.contract import FlagMetadata
from care_nav.gcp.resolver import TierMap
from care_nav.gcp.schemas import ModuleConfig

logger = logging.getLogger("care_nav.config")


@dataclass(frozen=True)
class GcpConfig:
    module: ModuleConfig
    tier_map: TierMap
    flag_metadata: FlagMetadata


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"could not read {path.name}", source=str(path)) from exc


class GcpConfigStore:
    """
    Populate-once, read-many holder for the Guided Care Plan configuration.

    Created at application startup and shared by all requests. The first access loads
    the three JSON files under a lock; a failed load is not cached, so the next request
    retries. Loading is deterministic, so a concurrent first access can only ever
    produce the same value.
    """

    def __init__(self, *, module_path: str, tier_map_path: str, flag_metadata_path: str):
        self._module_path = Path(module_path)
        self._tier_map_path = Path(tier_map_path)
        self._flag_metadata_path = Path(flag_metadata_path)
        self._lock = threading.Lock()
        self._config: GcpConfig | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> GcpConfigStore:
        return cls(
            module_path=settings.gcp_module_config_path,
            tier_map_path=settings.gcp_tier_map_path,
            flag_metadata_path=settings.gcp_flag_metadata_path,
        )

    def get(self) -> GcpConfig:
        config = self._config
        if config is not None:
            return config
        with self._lock:
            if self._config is None:
                self._config = self._load()
            return self._config

    def _load(self) -> GcpConfig:
        try:
            module = ModuleConfig.model_validate(_read_json(self._module_path))
        except ValidationError as exc:
            raise ConfigurationError(
                "module configuration is invalid", source=str(self._module_path)
            ) from exc

        tier_map = _read_json(self._tier_map_path)
        if not isinstance(tier_map, dict):
            raise ConfigurationError("tier map must be an object", source=str(self._tier_map_path))

        flag_metadata = _read_json(self._flag_metadata_path)
        if not isinstance(flag_metadata, dict):
            raise ConfigurationError(
                "flag metadata must be an object", source=str(self._flag_metadata_path)
            )

        logger.info(
            "Loaded Guided Care Plan configuration (%d scored sections)",
            len(module.scored_sections()),
        )
        return GcpConfig(module=module, tier_map=tier_map, flag_metadata=flag_metadata)


def get_config_store(request: Request) -> GcpConfigStore:
    """Dependency provider returning the store created at application startup."""

    return request.app.state.gcp_config_store

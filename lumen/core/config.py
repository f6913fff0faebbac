"""Configuration management for Lumen.

Settings are read from ``~/.lumen/settings.json`` (or ``$LUMEN_HOME``) and
environment variables, which take precedence over the file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from lumen.core.errors import UnknownProviderError
from lumen.core.registry import get_provider, list_providers
from lumen.utils.log import get_logger


logger = get_logger()

USER_CONFIG_DIR_NAME = ".lumen"
SETTINGS_FILE_NAME = "settings.json"
CREDENTIALS_FILE_NAME = "credentials.json"
MODEL_CONFIGS_FILE_NAME = "model_configs.json"

DEFAULT_DISCOVERY_TIMEOUT = 4.0
DEFAULT_CLOUD_TIMEOUT = 10.0
DEFAULT_CHAT_TIMEOUT = 120.0

_TIMEOUT_ENV = {
    "discovery_timeout": "LUMEN_DISCOVERY_TIMEOUT",
    "cloud_timeout": "LUMEN_CLOUD_TIMEOUT",
    "chat_timeout": "LUMEN_CHAT_TIMEOUT",
}


def default_data_dir() -> Path:
    override = os.environ.get("LUMEN_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / USER_CONFIG_DIR_NAME


class LumenSettings(BaseModel):
    """Runtime settings for discovery, catalog and chat calls."""

    data_dir: Path = Field(default_factory=default_data_dir)
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    cloud_timeout: float = DEFAULT_CLOUD_TIMEOUT
    chat_timeout: float = DEFAULT_CHAT_TIMEOUT
    # Endpoint overrides keyed by provider id, e.g. {"ollama": "http://gpu-box:11434"}.
    endpoints: Dict[str, str] = Field(default_factory=dict)

    @field_validator("discovery_timeout", "cloud_timeout", "chat_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be greater than 0")
        return value

    @field_validator("endpoints")
    @classmethod
    def _known_providers(cls, value: Dict[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for provider_id, endpoint in value.items():
            try:
                provider = get_provider(provider_id)
            except UnknownProviderError as exc:
                raise ValueError(str(exc)) from exc
            normalized[provider.id] = endpoint.rstrip("/")
        return normalized

    @property
    def credentials_path(self) -> Path:
        return self.data_dir / CREDENTIALS_FILE_NAME

    @property
    def model_configs_path(self) -> Path:
        return self.data_dir / MODEL_CONFIGS_FILE_NAME

    def endpoint_for(self, provider_id: str) -> str:
        """Return the endpoint to use for a provider, honoring overrides."""
        provider = get_provider(provider_id)
        return (self.endpoints.get(provider.id) or provider.default_endpoint or "").rstrip("/")


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for field_name, env_var in _TIMEOUT_ENV.items():
        raw = os.environ.get(env_var)
        if raw:
            overrides[field_name] = raw
    endpoints: Dict[str, str] = {}
    for provider in list_providers():
        raw = os.environ.get(f"LUMEN_{provider.id.upper()}_ENDPOINT")
        if raw:
            endpoints[provider.id] = raw
    if endpoints:
        overrides["endpoints"] = endpoints
    return overrides


class ConfigManager:
    """Loads and saves :class:`LumenSettings`."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = data_dir or default_data_dir()
        self.settings_path = self.data_dir / SETTINGS_FILE_NAME
        self._settings: Optional[LumenSettings] = None

    def _read_file(self) -> Dict[str, Any]:
        if not self.settings_path.exists():
            logger.debug(
                "[config] Settings file not found; using defaults",
                extra={"path": str(self.settings_path)},
            )
            return {}
        try:
            data = json.loads(self.settings_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(
                "Error loading settings: %s: %s",
                type(e).__name__,
                e,
                extra={"path": str(self.settings_path)},
            )
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "[config] Settings file is not a JSON object; ignoring",
                extra={"path": str(self.settings_path)},
            )
            return {}
        return data

    def get_settings(self) -> LumenSettings:
        """Load settings once: file values first, then environment overrides."""
        if self._settings is None:
            data = self._read_file()
            env = _env_overrides()
            endpoints = {**data.get("endpoints", {}), **env.pop("endpoints", {})}
            merged = {**data, **env, "data_dir": self.data_dir}
            if endpoints:
                merged["endpoints"] = endpoints
            try:
                self._settings = LumenSettings(**merged)
            except ValueError as e:
                logger.warning(
                    "Invalid settings, falling back to defaults: %s",
                    e,
                    extra={"path": str(self.settings_path)},
                )
                self._settings = LumenSettings(data_dir=self.data_dir)
            logger.debug(
                "[config] Loaded settings",
                extra={
                    "path": str(self.settings_path),
                    "endpoint_overrides": sorted(self._settings.endpoints),
                },
            )
        return self._settings

    def save_settings(self, settings: LumenSettings) -> None:
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = settings
        self.settings_path.write_text(
            settings.model_dump_json(indent=2, exclude={"data_dir"}), encoding="utf-8"
        )
        logger.debug("[config] Saved settings", extra={"path": str(self.settings_path)})


config_manager = ConfigManager()


def get_settings() -> LumenSettings:
    """Get settings from the default config manager."""
    return config_manager.get_settings()

"""Per-(provider, model) generation parameters with provider-keyed defaults."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lumen.core.errors import InvalidParameterError, NoModelSelectedError
from lumen.core.registry import get_provider
from lumen.utils.log import get_logger

logger = get_logger()


class ModelConfig(BaseModel):
    """Generation parameters applied to every chat with a model."""

    model_config = ConfigDict(allow_inf_nan=False, validate_assignment=True)

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1)
    repeat_penalty: float = Field(default=1.1, gt=0.0)
    num_ctx: int = Field(default=2048, gt=0)
    stop: List[str] = Field(default_factory=list)


_LOCAL_DEFAULT = ModelConfig()

_DEFAULTS: Dict[str, ModelConfig] = {
    "ollama": _LOCAL_DEFAULT,
    "lmstudio": _LOCAL_DEFAULT,
    "docker": _LOCAL_DEFAULT,
    "huggingface": _LOCAL_DEFAULT,
    "openai": ModelConfig(num_ctx=4096),
    "anthropic": ModelConfig(num_ctx=8192),
    "google": ModelConfig(num_ctx=8192),
}


def defaults_for(provider_id: str) -> ModelConfig:
    """Return a fresh copy of the documented defaults for a provider."""
    provider = get_provider(provider_id)
    return _DEFAULTS[provider.id].model_copy(deep=True)


def validate_config(
    config: Union[ModelConfig, Mapping[str, Any]], base: Optional[ModelConfig] = None
) -> ModelConfig:
    """Validate ``config`` and raise ``InvalidParameterError`` naming the first bad field.

    A partial mapping is laid over ``base`` (or the class defaults).
    """
    if isinstance(config, ModelConfig):
        data = config.model_dump()
    else:
        data = {**(base.model_dump() if base is not None else {}), **dict(config)}
    try:
        return ModelConfig.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "config"
        raise InvalidParameterError(field, first.get("msg", "invalid value")) from exc


class ModelConfigStore:
    """JSON-backed store of model configs, nested as ``{provider: {model: config}}``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "[model_config] Failed to load model configs: %s: %s",
                type(exc).__name__,
                exc,
                extra={"path": str(self.path)},
            )
            return {}
        if not isinstance(payload, dict):
            logger.warning(
                "[model_config] Model configs file is not an object; ignoring it",
                extra={"path": str(self.path)},
            )
            return {}
        malformed = [provider for provider, models in payload.items() if not isinstance(models, dict)]
        if malformed:
            logger.warning(
                "[model_config] Dropping malformed provider entries",
                extra={"path": str(self.path), "providers": malformed},
            )
        return {provider: models for provider, models in payload.items() if isinstance(models, dict)}

    def _write(self, payload: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    @staticmethod
    def _key(provider_id: str, model_id: str) -> tuple[str, str]:
        provider = get_provider(provider_id)
        model = (model_id or "").strip()
        if not model:
            raise NoModelSelectedError(provider.id)
        return provider.id, model

    def get_config(self, provider_id: str, model_id: str) -> ModelConfig:
        """Saved config for the pair, or the provider's defaults."""
        provider, model = self._key(provider_id, model_id)
        stored = self._read().get(provider, {}).get(model)
        if stored is None:
            return defaults_for(provider)
        try:
            return ModelConfig.model_validate(stored)
        except ValidationError as exc:
            logger.warning(
                "[model_config] Stored config is invalid; using defaults",
                extra={"provider": provider, "model": model, "error": str(exc)},
            )
            return defaults_for(provider)

    def save_config(
        self, provider_id: str, model_id: str, config: Union[ModelConfig, Mapping[str, Any]]
    ) -> str:
        """Validate and persist a config. Nothing is written when validation fails."""
        provider, model = self._key(provider_id, model_id)
        validated = validate_config(config, base=defaults_for(provider))
        with self._lock:
            payload = self._read()
            payload.setdefault(provider, {})[model] = validated.model_dump()
            self._write(payload)
        logger.info(
            "[model_config] Saved model config",
            extra={"provider": provider, "model": model},
        )
        return "saved"

    def reset_config(self, provider_id: str, model_id: str) -> bool:
        """Delete the override for the pair. Returns True when one existed."""
        provider, model = self._key(provider_id, model_id)
        with self._lock:
            payload = self._read()
            models = payload.get(provider, {})
            if model not in models:
                return False
            del models[model]
            if not models:
                payload.pop(provider, None)
            self._write(payload)
        logger.info(
            "[model_config] Reset model config to defaults",
            extra={"provider": provider, "model": model},
        )
        return True

"""Ollama adapter: ``/api/tags`` for listing and ``/api/generate`` for chat."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from lumen.core.error_mapping import map_message, raise_for_provider_status
from lumen.core.errors import UnknownProviderFailure
from lumen.core.model_config import ModelConfig
from lumen.core.providers.base import LocalRuntimeAdapter
from lumen.core.types import ModelDescriptor
from lumen.utils.log import get_logger

logger = get_logger()


def build_options(config: ModelConfig) -> Dict[str, Any]:
    """Map a model config onto Ollama's ``options`` object."""
    options: Dict[str, Any] = {
        "temperature": config.temperature,
        "top_p": config.top_p,
        "top_k": config.top_k,
        "repeat_penalty": config.repeat_penalty,
        "num_ctx": config.num_ctx,
    }
    if config.stop:
        options["stop"] = list(config.stop)
    return options


class OllamaAdapter(LocalRuntimeAdapter):
    start_hint = "Please start Ollama first."
    empty_hint = "No models found in Ollama. Pull some models using 'ollama pull <model-name>'"

    def model_missing_hint(self, model_id: str) -> str:
        return f"Model {model_id!r} is not installed. Run `ollama pull {model_id}` and try again."

    def parse_models(self, payload: Any) -> List[ModelDescriptor]:
        if not isinstance(payload, dict):
            raise UnknownProviderFailure("Failed to parse Ollama response: expected a JSON object")
        models: List[ModelDescriptor] = []
        for entry in payload.get("models") or []:
            if not isinstance(entry, dict):
                continue
            model_id = entry.get("name") or entry.get("model")
            if not model_id:
                continue
            models.append(
                self.descriptor(
                    str(model_id),
                    size_bytes=entry.get("size"),
                    modified=entry.get("modified_at"),
                )
            )
        return models

    async def list_models(
        self, *, timeout: float, api_key: Optional[str] = None, force_refresh: bool = False
    ) -> List[ModelDescriptor]:
        async with self.http_client(timeout, self.no_cache_headers(force_refresh)) as client:
            response = await client.get(self.url(self.provider.list_path))
            raise_for_provider_status(response)
            try:
                payload = response.json()
            except ValueError as exc:
                raise UnknownProviderFailure(f"Failed to parse Ollama response: {exc}") from exc
        return self.parse_models(payload)

    async def chat(
        self,
        model_id: str,
        prompt: str,
        config: ModelConfig,
        *,
        timeout: float,
        api_key: Optional[str] = None,
    ) -> str:
        body = {
            "model": model_id,
            "prompt": prompt,
            "stream": False,
            "options": build_options(config),
        }
        logger.debug(
            "[ollama] Sending generate request",
            extra={"model": model_id, "prompt_length": len(prompt)},
        )
        async with self.http_client(timeout) as client:
            response = await client.post(self.url(self.provider.chat_path), json=body)
            raise_for_provider_status(response)
            try:
                payload = response.json()
            except ValueError as exc:
                raise UnknownProviderFailure(f"Failed to parse Ollama response: {exc}") from exc
        if isinstance(payload, dict) and payload.get("error"):
            raise map_message(f"Ollama error: {payload['error']}")
        if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
            raise UnknownProviderFailure("Ollama response did not contain any text")
        return payload["response"]

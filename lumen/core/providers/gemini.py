"""Google Gemini adapter over the Generative Language REST API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from lumen.core.error_mapping import raise_for_provider_status
from lumen.core.errors import UnknownProviderFailure
from lumen.core.model_config import ModelConfig
from lumen.core.providers.base import ProviderAdapter
from lumen.core.types import ModelDescriptor
from lumen.utils.log import get_logger

logger = get_logger()

MODEL_PREFIX = "models/"
GENERATE_METHOD = "generateContent"
PAGE_SIZE = 1000


def strip_model_prefix(name: str) -> str:
    return name[len(MODEL_PREFIX):] if name.startswith(MODEL_PREFIX) else name


def build_generation_config(config: ModelConfig) -> Dict[str, Any]:
    generation: Dict[str, Any] = {
        "temperature": config.temperature,
        "topP": config.top_p,
        "topK": config.top_k,
    }
    if config.stop:
        generation["stopSequences"] = list(config.stop)
    return generation


def response_text(payload: Any) -> str:
    """Join the text parts of the first candidate."""
    if not isinstance(payload, dict):
        raise UnknownProviderFailure("Failed to parse Google response: expected a JSON object")
    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise UnknownProviderFailure(f"Google blocked the prompt: {reason}")
        raise UnknownProviderFailure("No response from Google")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiAdapter(ProviderAdapter):
    """The API key travels in the ``x-goog-api-key`` header, never in the URL."""

    def _headers(self, api_key: Optional[str]) -> Dict[str, str]:
        return {"x-goog-api-key": api_key or ""}

    async def list_models(
        self, *, timeout: float, api_key: Optional[str] = None, force_refresh: bool = False
    ) -> List[ModelDescriptor]:
        async with self.http_client(timeout, self._headers(api_key)) as client:
            response = await client.get(self.url("/models"), params={"pageSize": PAGE_SIZE})
            raise_for_provider_status(response)
            try:
                payload = response.json()
            except ValueError as exc:
                raise UnknownProviderFailure(f"Failed to parse Google response: {exc}") from exc
        if not isinstance(payload, dict):
            raise UnknownProviderFailure("Failed to parse Google response: expected a JSON object")

        models: List[ModelDescriptor] = []
        for entry in payload.get("models") or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            methods = entry.get("supportedGenerationMethods")
            if methods is not None and GENERATE_METHOD not in methods:
                continue
            model_id = strip_model_prefix(str(entry["name"]))
            models.append(
                ModelDescriptor(
                    id=model_id,
                    provider_id=self.provider_id,
                    display_name=entry.get("displayName") or model_id,
                )
            )
        logger.debug("[google] Listed generateContent models", extra={"count": len(models)})
        return models

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
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": build_generation_config(config),
        }
        model = strip_model_prefix(model_id)
        async with self.http_client(timeout, self._headers(api_key)) as client:
            response = await client.post(self.url(f"/models/{model}:{GENERATE_METHOD}"), json=body)
            raise_for_provider_status(response)
            try:
                payload = response.json()
            except ValueError as exc:
                raise UnknownProviderFailure(f"Failed to parse Google response: {exc}") from exc
        return response_text(payload)

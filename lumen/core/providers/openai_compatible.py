"""Local runtimes that speak the OpenAI wire format (LM Studio, Docker, HF)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from lumen.core.error_mapping import map_message, raise_for_provider_status
from lumen.core.errors import UnknownProviderFailure
from lumen.core.model_config import ModelConfig
from lumen.core.providers.base import LocalRuntimeAdapter
from lumen.core.types import ModelDescriptor
from lumen.utils.log import get_logger

logger = get_logger()


def build_chat_body(model_id: str, prompt: str, config: ModelConfig) -> Dict[str, Any]:
    """Chat completion body. ``num_ctx`` has no equivalent and is dropped."""
    body: Dict[str, Any] = {
        "model": model_id,
        "messages": [{"role": "user", "content": prompt}],
        "stream": False,
        "temperature": config.temperature,
        "top_p": config.top_p,
        "top_k": config.top_k,
        "repeat_penalty": config.repeat_penalty,
    }
    if config.stop:
        body["stop"] = list(config.stop)
    return body


def completion_text(payload: Any, runtime: str) -> str:
    if not isinstance(payload, dict):
        raise UnknownProviderFailure(f"Failed to parse {runtime} response: expected a JSON object")
    error = payload.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else error
        raise map_message(f"{runtime} error: {message}")
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise UnknownProviderFailure(f"No response from {runtime}")
    content = (choices[0].get("message") or {}).get("content")
    return content if isinstance(content, str) else ""


class OpenAICompatibleRuntimeAdapter(LocalRuntimeAdapter):
    """Lists ``{data: [{id}]}`` and chats through ``/v1/chat/completions``."""

    def parse_models(self, payload: Any) -> List[ModelDescriptor]:
        if not isinstance(payload, dict):
            raise UnknownProviderFailure(
                f"Failed to parse {self.provider.display_name} response: expected a JSON object"
            )
        models: List[ModelDescriptor] = []
        for entry in payload.get("data") or []:
            if isinstance(entry, dict) and entry.get("id"):
                models.append(self.descriptor(str(entry["id"]), modified=entry.get("created")))
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
                raise UnknownProviderFailure(
                    f"Failed to parse {self.provider.display_name} response: {exc}"
                ) from exc
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
        logger.debug(
            "[openai_compatible] Sending chat completion",
            extra={"provider": self.provider_id, "model": model_id},
        )
        async with self.http_client(timeout) as client:
            response = await client.post(
                self.url(self.provider.chat_path),
                json=build_chat_body(model_id, prompt, config),
            )
            raise_for_provider_status(response)
            try:
                payload = response.json()
            except ValueError as exc:
                raise UnknownProviderFailure(
                    f"Failed to parse {self.provider.display_name} response: {exc}"
                ) from exc
        return completion_text(payload, self.provider.display_name)


class LMStudioAdapter(OpenAICompatibleRuntimeAdapter):
    start_hint = "Make sure LM Studio is running with a model loaded."
    empty_hint = "No models loaded in LM Studio. Please load a model in LM Studio first."

    def model_missing_hint(self, model_id: str) -> str:
        return f"Load {model_id!r} in LM Studio and try again."


class DockerModelRunnerAdapter(OpenAICompatibleRuntimeAdapter):
    start_hint = "Make sure Docker Model Runner is enabled and running."
    empty_hint = "No models available in Docker Model Runner. Pull one with 'docker model pull <model-name>'."

    def model_missing_hint(self, model_id: str) -> str:
        return f"Run `docker model pull {model_id}` and try again."


class HuggingFaceAdapter(OpenAICompatibleRuntimeAdapter):
    start_hint = "Make sure your Hugging Face service is running."
    empty_hint = "No models available in Hugging Face service. Make sure models are loaded."

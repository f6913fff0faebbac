"""OpenAI adapter built on the official SDK."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI, DefaultAsyncHttpxClient

from lumen.core.error_mapping import classify_exception, map_message, map_status_error
from lumen.core.errors import (
    InvalidCredentialError,
    LumenError,
    ModelNotFoundError,
    ProviderTimeoutError,
)
from lumen.core.model_config import ModelConfig
from lumen.core.providers.base import ProviderAdapter
from lumen.core.types import ModelDescriptor
from lumen.utils.log import get_logger

logger = get_logger()

# Chat Completions accepts at most four stop sequences.
MAX_STOP_SEQUENCES = 4


def _classify_openai_error(exc: Exception) -> LumenError:
    """Classify an OpenAI SDK exception."""
    exc_msg = str(exc)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return InvalidCredentialError(f"Authentication failed: {exc_msg}", provider_id="openai")
    if isinstance(exc, openai.NotFoundError):
        return ModelNotFoundError(f"Model not found: {exc_msg}")
    # APITimeoutError subclasses APIConnectionError, so check it first.
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(f"Request timed out: {exc_msg}")
    if isinstance(exc, openai.APIConnectionError):
        return map_message(f"Connection error: {exc_msg}")
    if isinstance(exc, openai.APIStatusError):
        return map_status_error(exc.status_code, exc_msg)
    return classify_exception(exc)


def build_chat_kwargs(model_id: str, prompt: str, config: ModelConfig) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "model": model_id,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": config.temperature,
        "top_p": config.top_p,
    }
    if config.stop:
        kwargs["stop"] = list(config.stop[:MAX_STOP_SEQUENCES])
    return kwargs


class OpenAIAdapter(ProviderAdapter):
    """Live model listing and chat completions against api.openai.com."""

    def _client(self, api_key: str, timeout: float) -> AsyncOpenAI:
        kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": self.endpoint,
            "timeout": timeout,
            "max_retries": 0,
        }
        if self.transport is not None:
            kwargs["http_client"] = DefaultAsyncHttpxClient(transport=self.transport)
        return AsyncOpenAI(**kwargs)

    async def list_models(
        self, *, timeout: float, api_key: Optional[str] = None, force_refresh: bool = False
    ) -> List[ModelDescriptor]:
        try:
            async with self._client(api_key or "", timeout) as client:
                page = await client.models.list()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise _classify_openai_error(exc) from exc
        models = []
        for model in page.data:
            created = getattr(model, "created", None)
            models.append(
                ModelDescriptor(
                    id=model.id,
                    provider_id=self.provider_id,
                    display_name=model.id,
                    last_modified=(
                        datetime.fromtimestamp(created, tz=timezone.utc) if created else None
                    ),
                )
            )
        logger.debug("[openai] Listed models", extra={"count": len(models)})
        return sorted(models, key=lambda item: item.id)

    async def chat(
        self,
        model_id: str,
        prompt: str,
        config: ModelConfig,
        *,
        timeout: float,
        api_key: Optional[str] = None,
    ) -> str:
        try:
            async with self._client(api_key or "", timeout) as client:
                response = await client.chat.completions.create(
                    **build_chat_kwargs(model_id, prompt, config)
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise _classify_openai_error(exc) from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

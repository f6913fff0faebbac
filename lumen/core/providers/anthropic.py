"""Anthropic adapter built on the official SDK.

Listing uses the curated policy: one ``models.list`` call with ``limit=1``
proves the key works, then the registry's curated chat models are returned.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic, DefaultAsyncHttpxClient

from lumen.core.error_mapping import classify_exception, map_message, map_status_error
from lumen.core.errors import (
    InvalidCredentialError,
    LumenError,
    ModelNotFoundError,
    ProviderTimeoutError,
)
from lumen.core.model_config import ModelConfig, defaults_for
from lumen.core.providers.base import ProviderAdapter
from lumen.core.types import ModelDescriptor
from lumen.utils.log import get_logger

logger = get_logger()

MAX_TOKENS = 4096
MAX_TEMPERATURE = 1.0


def _classify_anthropic_error(exc: Exception) -> LumenError:
    """Classify an Anthropic SDK exception."""
    exc_msg = str(exc)
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return InvalidCredentialError(f"Authentication failed: {exc_msg}", provider_id="anthropic")
    if isinstance(exc, anthropic.NotFoundError):
        return ModelNotFoundError(f"Model not found: {exc_msg}")
    if isinstance(exc, anthropic.APITimeoutError):
        return ProviderTimeoutError(f"Request timed out: {exc_msg}")
    if isinstance(exc, anthropic.APIConnectionError):
        return map_message(f"Connection error: {exc_msg}")
    if isinstance(exc, anthropic.APIStatusError):
        return map_status_error(exc.status_code, exc_msg)
    return classify_exception(exc)


def build_message_kwargs(model_id: str, prompt: str, config: ModelConfig) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "model": model_id,
        "max_tokens": MAX_TOKENS,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": min(config.temperature, MAX_TEMPERATURE),
        "top_k": config.top_k,
    }
    # Newer models reject temperature and top_p together unless top_p was tuned.
    if config.top_p != defaults_for("anthropic").top_p:
        kwargs["top_p"] = config.top_p
    if config.stop:
        kwargs["stop_sequences"] = list(config.stop)
    return kwargs


class AnthropicAdapter(ProviderAdapter):
    def _client(self, api_key: str, timeout: float) -> AsyncAnthropic:
        kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": self.endpoint,
            "timeout": timeout,
            "max_retries": 0,
        }
        if self.transport is not None:
            kwargs["http_client"] = DefaultAsyncHttpxClient(transport=self.transport)
        return AsyncAnthropic(**kwargs)

    async def list_models(
        self, *, timeout: float, api_key: Optional[str] = None, force_refresh: bool = False
    ) -> List[ModelDescriptor]:
        try:
            async with self._client(api_key or "", timeout) as client:
                await client.models.list(limit=1)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise _classify_anthropic_error(exc) from exc
        logger.debug(
            "[anthropic] Key validated; returning curated models",
            extra={"count": len(self.provider.curated_models)},
        )
        return [
            ModelDescriptor(id=model_id, provider_id=self.provider_id, display_name=model_id)
            for model_id in self.provider.curated_models
        ]

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
                response = await client.messages.create(
                    **build_message_kwargs(model_id, prompt, config)
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise _classify_anthropic_error(exc) from exc
        return "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", None) == "text"
        )

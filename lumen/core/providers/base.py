"""Shared abstractions for provider adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from lumen.core.errors import (
    LumenError,
    ModelNotFoundError,
    ProviderConnectionError,
    ProviderTimeoutError,
)
from lumen.core.model_config import ModelConfig
from lumen.core.registry import Provider
from lumen.core.types import ModelDescriptor
from lumen.utils.formatting import parse_timestamp


class ProviderAdapter(ABC):
    """Talks to one provider's HTTP API.

    Adapters hold no connection state: each call opens and closes its own
    client. ``transport`` is passed through to httpx so tests can swap in a
    ``MockTransport``.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        endpoint: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider = provider
        self.endpoint = (endpoint or provider.default_endpoint or "").rstrip("/")
        self.transport = transport

    @property
    def provider_id(self) -> str:
        return self.provider.id

    def url(self, path: Optional[str]) -> str:
        return f"{self.endpoint}{path or ''}"

    def http_client(
        self, timeout: float, headers: Optional[Dict[str, str]] = None
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=self.transport,
        )

    def annotate(self, error: LumenError, model_id: Optional[str] = None) -> LumenError:
        """Attach provider-specific remediation to a classified error."""
        return error

    @abstractmethod
    async def list_models(
        self, *, timeout: float, api_key: Optional[str] = None, force_refresh: bool = False
    ) -> List[ModelDescriptor]:
        """Return the provider's models, raising a classified error on failure."""

    @abstractmethod
    async def chat(
        self,
        model_id: str,
        prompt: str,
        config: ModelConfig,
        *,
        timeout: float,
        api_key: Optional[str] = None,
    ) -> str:
        """Send one user message and return the completion text verbatim."""


class LocalRuntimeAdapter(ProviderAdapter):
    """Adapter for a runtime on the user's machine."""

    start_hint: str = "Make sure the runtime is running."
    empty_hint: str = "No models are available."

    def no_cache_headers(self, force_refresh: bool) -> Optional[Dict[str, str]]:
        if not force_refresh:
            return None
        return {"Cache-Control": "no-cache", "Pragma": "no-cache"}

    def descriptor(
        self,
        model_id: str,
        *,
        size_bytes: Any = None,
        modified: Any = None,
    ) -> ModelDescriptor:
        last_modified: Optional[datetime] = None
        if isinstance(modified, (int, float)) and modified > 0:
            last_modified = datetime.fromtimestamp(modified).astimezone()
        elif isinstance(modified, str):
            last_modified = parse_timestamp(modified)
        return ModelDescriptor(
            id=model_id,
            provider_id=self.provider_id,
            display_name=model_id,
            size_bytes=size_bytes if isinstance(size_bytes, int) and size_bytes >= 0 else None,
            last_modified=last_modified,
        )

    def annotate(self, error: LumenError, model_id: Optional[str] = None) -> LumenError:
        name = self.provider.display_name
        if isinstance(error, ProviderConnectionError):
            error.remediation = f"{name} is not running. {self.start_hint}"
        elif isinstance(error, ProviderTimeoutError):
            error.remediation = (
                f"{name} did not respond in time. Try a smaller model or reduce the context size."
            )
        elif isinstance(error, ModelNotFoundError) and model_id:
            error.remediation = self.model_missing_hint(model_id)
        return error

    def model_missing_hint(self, model_id: str) -> str:
        return f"Model {model_id!r} is not available in {self.provider.display_name}."

"""Provider adapter registry.

SDK-backed adapters are imported lazily so local discovery never pays for
loading the cloud SDKs.
"""

from __future__ import annotations

import importlib
from typing import Dict, Optional, Tuple, Type, cast

import httpx

from lumen.core.providers.base import LocalRuntimeAdapter, ProviderAdapter
from lumen.core.registry import get_provider

_ADAPTERS: Dict[str, Tuple[str, str]] = {
    "ollama": ("ollama", "OllamaAdapter"),
    "lmstudio": ("openai_compatible", "LMStudioAdapter"),
    "docker": ("openai_compatible", "DockerModelRunnerAdapter"),
    "huggingface": ("openai_compatible", "HuggingFaceAdapter"),
    "openai": ("openai", "OpenAIAdapter"),
    "anthropic": ("anthropic", "AnthropicAdapter"),
    "google": ("gemini", "GeminiAdapter"),
}


def _load_adapter(module: str, cls: str) -> Type[ProviderAdapter]:
    """Dynamically import an adapter class."""
    mod = importlib.import_module(f"lumen.core.providers.{module}")
    adapter_cls = cast(Optional[Type[ProviderAdapter]], getattr(mod, cls, None))
    if adapter_cls is None:
        raise ImportError(f"{cls} not found in {module}")
    return adapter_cls


def get_adapter(
    provider_id: str,
    *,
    endpoint: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderAdapter:
    """Return an adapter for a registered provider id."""
    provider = get_provider(provider_id)
    module, cls = _ADAPTERS[provider.id]
    return _load_adapter(module, cls)(provider, endpoint=endpoint, transport=transport)


__all__ = ["LocalRuntimeAdapter", "ProviderAdapter", "get_adapter"]

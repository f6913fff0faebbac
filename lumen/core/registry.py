"""Static catalog of the providers Lumen knows how to talk to."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from lumen.core.errors import UnknownProviderError, UnsupportedProviderClassError


class ProviderClass(str, Enum):
    """Where a provider runs."""

    LOCAL = "local"
    CLOUD = "cloud"


class ListingPolicy(str, Enum):
    """How a cloud provider's model list is produced.

    ``live`` queries the provider's listing API. ``curated`` returns the
    compiled-in ``curated_models`` after validating the key with a live call.
    """

    LIVE = "live"
    CURATED = "curated"


class Provider(BaseModel):
    """Provider metadata independent of UI concerns."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    provider_class: ProviderClass
    default_endpoint: Optional[str] = None
    list_path: Optional[str] = None
    chat_path: Optional[str] = None
    listing_policy: ListingPolicy = ListingPolicy.LIVE
    curated_models: Tuple[str, ...] = ()

    @property
    def is_local(self) -> bool:
        return self.provider_class == ProviderClass.LOCAL


_PROVIDERS: Tuple[Provider, ...] = (
    Provider(
        id="ollama",
        display_name="Ollama",
        provider_class=ProviderClass.LOCAL,
        default_endpoint="http://localhost:11434",
        list_path="/api/tags",
        chat_path="/api/generate",
    ),
    Provider(
        id="lmstudio",
        display_name="LM Studio",
        provider_class=ProviderClass.LOCAL,
        default_endpoint="http://localhost:1234",
        list_path="/v1/models",
        chat_path="/v1/chat/completions",
    ),
    Provider(
        id="docker",
        display_name="Docker Model Runner",
        provider_class=ProviderClass.LOCAL,
        default_endpoint="http://localhost:8080",
        list_path="/models",
        chat_path="/v1/chat/completions",
    ),
    Provider(
        id="huggingface",
        display_name="Hugging Face Transformers",
        provider_class=ProviderClass.LOCAL,
        default_endpoint="http://localhost:8000",
        list_path="/models",
        chat_path="/v1/chat/completions",
    ),
    Provider(
        id="openai",
        display_name="OpenAI",
        provider_class=ProviderClass.CLOUD,
        default_endpoint="https://api.openai.com/v1",
    ),
    Provider(
        id="anthropic",
        display_name="Anthropic",
        provider_class=ProviderClass.CLOUD,
        default_endpoint="https://api.anthropic.com",
        listing_policy=ListingPolicy.CURATED,
        curated_models=(
            "claude-opus-4-1-20250805",
            "claude-sonnet-4-5-20250929",
            "claude-haiku-4-5-20251001",
            "claude-3-haiku-20240307",
        ),
    ),
    Provider(
        id="google",
        display_name="Google",
        provider_class=ProviderClass.CLOUD,
        default_endpoint="https://generativelanguage.googleapis.com/v1beta",
    ),
)

_BY_ID: Dict[str, Provider] = {provider.id: provider for provider in _PROVIDERS}


def normalize_provider_id(provider_id: Optional[str]) -> str:
    return (provider_id or "").strip().lower()


def list_providers(provider_class: Optional[ProviderClass] = None) -> List[Provider]:
    """Return registered providers in catalog order, optionally filtered by class."""
    if provider_class is None:
        return list(_PROVIDERS)
    return [provider for provider in _PROVIDERS if provider.provider_class == provider_class]


def get_provider(provider_id: Optional[str]) -> Provider:
    """Look up a provider by id; unknown ids raise ``UnknownProviderError``."""
    provider = _BY_ID.get(normalize_provider_id(provider_id))
    if provider is None:
        raise UnknownProviderError(provider_id or "")
    return provider


def require_provider_class(
    provider_id: Optional[str], provider_class: ProviderClass, operation: str
) -> Provider:
    """Resolve a provider and check it belongs to ``provider_class``."""
    provider = get_provider(provider_id)
    if provider.provider_class != provider_class:
        raise UnsupportedProviderClassError(provider.id, operation, provider_class.value)
    return provider

"""Cloud model catalog resolution and connection testing."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx

from lumen.core.config import LumenSettings, get_settings
from lumen.core.credentials import CredentialStore
from lumen.core.error_mapping import run_with_exception_mapper
from lumen.core.errors import InvalidCredentialError, LumenError, MissingCredentialError
from lumen.core.providers import get_adapter
from lumen.core.registry import Provider, ProviderClass, require_provider_class
from lumen.core.types import ConnectionTestResult, ModelDescriptor
from lumen.utils.log import get_logger, mask_secret

logger = get_logger()


class CloudCatalogResolver:
    """Lists the models a cloud account can use, validating its key on the way."""

    def __init__(
        self,
        settings: Optional[LumenSettings] = None,
        *,
        credentials: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = credentials or CredentialStore(self.settings.credentials_path)
        self.transport = transport

    def _check(self, provider_id: str, api_key: Optional[str], operation: str) -> tuple[Provider, str]:
        provider = require_provider_class(provider_id, ProviderClass.CLOUD, operation)
        key = (api_key or "").strip()
        if not key:
            raise MissingCredentialError(provider.id)
        return provider, key

    async def _list(self, provider: Provider, key: str) -> List[ModelDescriptor]:
        adapter = get_adapter(
            provider.id,
            endpoint=self.settings.endpoint_for(provider.id),
            transport=self.transport,
        )
        timeout = self.settings.cloud_timeout
        logger.debug(
            "[cloud] Listing models",
            extra={
                "provider": provider.id,
                "policy": provider.listing_policy.value,
                "key": mask_secret(key),
            },
        )
        try:
            models = await run_with_exception_mapper(
                lambda: asyncio.wait_for(
                    adapter.list_models(timeout=timeout, api_key=key), timeout=timeout
                )
            )
        except LumenError as exc:
            if isinstance(exc, InvalidCredentialError):
                exc.provider_id = provider.id
            logger.warning(
                "[cloud] Model listing failed",
                extra={
                    "provider": provider.id,
                    "error_code": exc.error_code.value,
                    "error_message": exc.message,
                },
            )
            raise
        logger.info(
            "[cloud] Model listing complete",
            extra={"provider": provider.id, "count": len(models)},
        )
        return models

    async def list_models(self, provider_id: str, api_key: Optional[str]) -> List[ModelDescriptor]:
        """Return the models available to ``api_key``."""
        provider, key = self._check(provider_id, api_key, "Listing cloud models")
        return await self._list(provider, key)

    async def test_connection(
        self, provider_id: str, api_key: Optional[str]
    ) -> ConnectionTestResult:
        """Validate a key by listing models; failures raise like ``list_models``."""
        provider, key = self._check(provider_id, api_key, "Testing a cloud connection")
        models = await self._list(provider, key)
        return ConnectionTestResult(success=True, model_count=len(models))

    async def list_stored_models(self, provider_id: str) -> List[ModelDescriptor]:
        """List models using the key held in the credential store."""
        provider = require_provider_class(provider_id, ProviderClass.CLOUD, "Listing cloud models")
        return await self.list_models(provider.id, self.credentials.load(provider.id))

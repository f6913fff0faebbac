"""Facade the UI and the CLI call into.

Every operation takes provider and model ids explicitly; nothing here
remembers a "current" model between calls.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import httpx

from lumen.core.cloud import CloudCatalogResolver
from lumen.core.config import LumenSettings, get_settings
from lumen.core.credentials import CredentialStore
from lumen.core.discovery import LocalDiscoveryClient
from lumen.core.dispatch import DispatchRouter
from lumen.core.model_config import ModelConfig, ModelConfigStore
from lumen.core.registry import Provider, ProviderClass
from lumen.core.registry import list_providers as registry_providers
from lumen.core.types import Attachment, ConnectionTestResult, ModelDescriptor, ScanResult


class LumenService:
    def __init__(
        self,
        settings: Optional[LumenSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = CredentialStore(self.settings.credentials_path)
        self.model_configs = ModelConfigStore(self.settings.model_configs_path)
        self.discovery = LocalDiscoveryClient(self.settings, transport=transport)
        self.cloud = CloudCatalogResolver(
            self.settings, credentials=self.credentials, transport=transport
        )
        self.router = DispatchRouter(
            self.settings,
            credentials=self.credentials,
            model_configs=self.model_configs,
            transport=transport,
        )

    def list_providers(self, provider_class: Optional[ProviderClass] = None) -> List[Provider]:
        return registry_providers(provider_class)

    async def scan_local_models(self, provider_id: str, force_refresh: bool = False) -> ScanResult:
        return await self.discovery.scan_models(provider_id, force_refresh=force_refresh)

    async def scan_all_local_models(self, force_refresh: bool = False) -> Dict[str, ScanResult]:
        return await self.discovery.scan_all(force_refresh=force_refresh)

    async def list_cloud_models(
        self, provider_id: str, api_key: Optional[str] = None
    ) -> List[ModelDescriptor]:
        """List cloud models; without ``api_key`` the stored key is used."""
        if api_key is None:
            return await self.cloud.list_stored_models(provider_id)
        return await self.cloud.list_models(provider_id, api_key)

    async def test_cloud_connection(
        self, provider_id: str, api_key: Optional[str]
    ) -> ConnectionTestResult:
        return await self.cloud.test_connection(provider_id, api_key)

    def save_api_key(self, provider_id: str, key: Optional[str]) -> None:
        self.credentials.save(provider_id, key)

    def get_api_key(self, provider_id: str) -> str:
        return self.credentials.load(provider_id)

    def clear_api_key(self, provider_id: str) -> None:
        self.credentials.clear(provider_id)

    def save_model_config(
        self,
        provider_id: str,
        model_id: str,
        config: Union[ModelConfig, Mapping[str, Any]],
    ) -> str:
        return self.model_configs.save_config(provider_id, model_id, config)

    def get_model_config(self, provider_id: str, model_id: str) -> ModelConfig:
        return self.model_configs.get_config(provider_id, model_id)

    def reset_model_config(self, provider_id: str, model_id: str) -> bool:
        return self.model_configs.reset_config(provider_id, model_id)

    async def chat_with_model(
        self,
        provider_id: str,
        model_id: str,
        message: str,
        attachments: Sequence[Attachment] = (),
    ) -> str:
        return await self.router.chat(provider_id, model_id, message, attachments)


_service: Optional[LumenService] = None


def get_service() -> LumenService:
    """Return the process-wide service built from the loaded settings."""
    global _service
    if _service is None:
        _service = LumenService()
    return _service

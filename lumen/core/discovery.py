"""Local model discovery.

Scanning never raises for network or protocol failures; those come back as a
``ScanResult`` with ``success=False`` and a message the UI can show as is.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, cast

import httpx

from lumen.core.config import LumenSettings, get_settings
from lumen.core.error_mapping import ProviderHTTPError, classify_exception
from lumen.core.errors import ProviderConnectionError, ProviderTimeoutError
from lumen.core.providers import get_adapter
from lumen.core.providers.base import LocalRuntimeAdapter
from lumen.core.registry import ProviderClass, list_providers, require_provider_class
from lumen.core.types import ScanResult
from lumen.utils.log import get_logger

logger = get_logger()

_HOST_NOT_FOUND = ("no such host", "name or service not known", "nodename nor servname")


def _http_hint(adapter: LocalRuntimeAdapter, status_code: int) -> str:
    name = adapter.provider.display_name
    if status_code == 404:
        return f"{name} API endpoint not found. Check the endpoint and make sure you're using a supported {name} version."
    if status_code == 500:
        return f"{name} server error. Try restarting {name}."
    if status_code == 503:
        return f"{name} service unavailable. The service may be starting up."
    if status_code >= 500:
        return f"{name} server is experiencing issues."
    return adapter.start_hint


def describe_scan_failure(adapter: LocalRuntimeAdapter, exc: BaseException) -> str:
    """Turn a failed scan into a message naming the runtime and what to do."""
    name = adapter.provider.display_name
    if isinstance(exc, ProviderHTTPError):
        return f"HTTP {exc.status_code}: {exc.detail} - {_http_hint(adapter, exc.status_code)}"

    prefix = f"Cannot connect to {name} at {adapter.endpoint}. "
    error = classify_exception(exc)
    raw = str(exc).lower()
    if isinstance(error, ProviderTimeoutError):
        return prefix + f"Connection timeout - {name} may be starting up or not responding."
    if isinstance(error, ProviderConnectionError):
        if any(hint in raw for hint in _HOST_NOT_FOUND):
            return prefix + f"Host not found - check if {name} is installed and the endpoint is correct."
        if "network is unreachable" in raw:
            return prefix + "Network unreachable - check your network connection."
        return prefix + f"Connection refused - {name} is not running. {adapter.start_hint}"
    return f"{name}: {error.message}"


class LocalDiscoveryClient:
    """Scans local runtimes for installed or loaded models."""

    def __init__(
        self,
        settings: Optional[LumenSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport

    def _adapter(self, provider_id: str) -> LocalRuntimeAdapter:
        return cast(
            LocalRuntimeAdapter,
            get_adapter(
                provider_id,
                endpoint=self.settings.endpoint_for(provider_id),
                transport=self.transport,
            ),
        )

    async def scan_models(self, provider_id: str, *, force_refresh: bool = False) -> ScanResult:
        """Query one local runtime for its models."""
        provider = require_provider_class(provider_id, ProviderClass.LOCAL, "Model discovery")
        adapter = self._adapter(provider.id)
        timeout = self.settings.discovery_timeout
        logger.debug(
            "[discovery] Scanning local runtime",
            extra={
                "provider": provider.id,
                "endpoint": adapter.endpoint,
                "force_refresh": force_refresh,
            },
        )
        try:
            models = await asyncio.wait_for(
                adapter.list_models(timeout=timeout, force_refresh=force_refresh),
                timeout=timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            message = describe_scan_failure(adapter, exc)
            logger.warning(
                "[discovery] Scan failed",
                extra={
                    "provider": provider.id,
                    "exception_type": type(exc).__name__,
                    "error_message": message,
                },
            )
            return ScanResult.fail(message)

        if not models:
            logger.info("[discovery] Runtime reported no models", extra={"provider": provider.id})
            return ScanResult.fail(adapter.empty_hint)
        logger.info(
            "[discovery] Scan complete",
            extra={"provider": provider.id, "count": len(models)},
        )
        return ScanResult.ok(models)

    async def scan_all(self, *, force_refresh: bool = False) -> Dict[str, ScanResult]:
        """Scan every local runtime concurrently."""
        providers = list_providers(ProviderClass.LOCAL)
        results = await asyncio.gather(
            *(self.scan_models(provider.id, force_refresh=force_refresh) for provider in providers)
        )
        return {provider.id: result for provider, result in zip(providers, results)}

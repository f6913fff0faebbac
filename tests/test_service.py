"""Tests for the LumenService facade."""

from __future__ import annotations

import httpx
import pytest

from lumen.core import service as service_module
from lumen.core.errors import MissingCredentialError
from lumen.core.registry import ProviderClass
from lumen.core.service import LumenService, get_service


def test_key_and_config_operations_share_storage(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)

    service.save_api_key("openai", "sk-test-abcdef123456")
    assert service.get_api_key("openai") == "sk-test-abcdef123456"
    assert LumenService(settings).get_api_key("openai") == "sk-test-abcdef123456"
    service.clear_api_key("openai")
    assert service.get_api_key("openai") == ""

    assert service.save_model_config("ollama", "llama3", {"temperature": 0.1}) == "saved"
    assert service.get_model_config("ollama", "llama3").temperature == 0.1
    assert service.reset_model_config("ollama", "llama3") is True
    assert service.get_model_config("ollama", "llama3").temperature == 0.7


def test_list_providers_filters_by_class(settings) -> None:
    service = LumenService(settings)
    assert len(service.list_providers()) == 7
    assert {p.id for p in service.list_providers(ProviderClass.CLOUD)} == {
        "openai",
        "anthropic",
        "google",
    }


@pytest.mark.asyncio
async def test_chat_and_scan_go_through_the_transport(settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "llama3", "size": 1}]})
        if request.url.path == "/api/generate":
            return httpx.Response(200, json={"response": "pong"})
        raise httpx.ConnectError("Connection refused", request=request)

    service = LumenService(settings, transport=httpx.MockTransport(handler))

    scan = await service.scan_local_models("ollama")
    assert [m.id for m in scan.models] == ["llama3"]
    everything = await service.scan_all_local_models()
    assert everything["ollama"].success and not everything["lmstudio"].success
    assert await service.chat_with_model("ollama", "llama3", "ping") == "pong"


@pytest.mark.asyncio
async def test_list_cloud_models_falls_back_to_stored_key(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)
    with pytest.raises(MissingCredentialError):
        await service.list_cloud_models("google")
    with pytest.raises(MissingCredentialError):
        await service.test_cloud_connection("google", "")


def test_get_service_is_a_singleton(settings, monkeypatch) -> None:
    monkeypatch.setattr(service_module, "_service", None)
    monkeypatch.setattr(service_module, "get_settings", lambda: settings)
    first = get_service()
    assert first is get_service()
    assert first.settings is settings

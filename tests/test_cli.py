"""Tests for the `lumen` command line."""

from __future__ import annotations

import json

import httpx
from click.testing import CliRunner

from lumen.cli import cli as cli_module
from lumen.core.service import LumenService


def _run_cli(service: LumenService, args: list[str], **kwargs):
    runner = CliRunner()
    return runner.invoke(cli_module.cli, args, obj=service, **kwargs)


def _ollama_handler(seen: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "llama3", "size": 4661224676}]})
        if request.url.path == "/api/generate":
            return httpx.Response(200, json={"response": "Hello from llama3"})
        raise httpx.ConnectError("Connection refused", request=request)

    return handler


def test_providers_json(settings) -> None:
    result = _run_cli(LumenService(settings), ["providers", "--json"])
    assert result.exit_code == 0
    rows = json.loads(result.output)
    assert [row["id"] for row in rows][:2] == ["ollama", "lmstudio"]
    assert rows[-1]["provider_class"] == "cloud"


def test_scan_single_provider(settings) -> None:
    seen: list[httpx.Request] = []
    service = LumenService(settings, transport=httpx.MockTransport(_ollama_handler(seen)))
    result = _run_cli(service, ["scan", "ollama", "--json", "--force"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["ollama"]["success"] is True
    assert payload["ollama"]["models"][0]["id"] == "llama3"
    assert seen[0].headers["cache-control"] == "no-cache"


def test_scan_failure_exits_nonzero(settings) -> None:
    seen: list[httpx.Request] = []
    service = LumenService(settings, transport=httpx.MockTransport(_ollama_handler(seen)))
    result = _run_cli(service, ["scan", "lmstudio"])
    assert result.exit_code == 1
    assert "lmstudio:" in result.output


def test_scan_rejects_cloud_and_unknown_providers(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)
    assert _run_cli(service, ["scan", "openai"]).exit_code == 3
    assert _run_cli(service, ["scan", "nosuch"]).exit_code == 2


def test_key_set_show_clear(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)

    set_result = _run_cli(service, ["key", "set", "openai", "sk-test-abcdef123456"])
    assert set_result.exit_code == 0
    assert "sk-test-abcdef123456" not in set_result.output

    show_result = _run_cli(service, ["key", "show", "openai"])
    assert show_result.exit_code == 0
    assert "****3456" in show_result.output
    assert "sk-test" not in show_result.output

    assert _run_cli(service, ["key", "clear", "openai"]).exit_code == 0
    assert "Not set" in _run_cli(service, ["key", "show", "openai"]).output


def test_key_set_prompts_when_missing(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)
    result = _run_cli(service, ["key", "set", "google"], input="AIza-prompted-key-77\n")
    assert result.exit_code == 0
    assert service.get_api_key("google") == "AIza-prompted-key-77"


def test_key_for_local_provider_is_rejected(settings, no_network) -> None:
    result = _run_cli(LumenService(settings, transport=no_network), ["key", "set", "ollama", "x"])
    assert result.exit_code == 3
    assert "Error:" in result.output


def test_config_set_show_reset(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)

    result = _run_cli(
        service,
        ["config", "set", "ollama", "llama3", "--temperature", "0.2", "--stop", "###", "--stop", "END"],
    )
    assert result.exit_code == 0

    shown = json.loads(_run_cli(service, ["config", "show", "ollama", "llama3"]).output)
    assert shown["temperature"] == 0.2
    assert shown["stop"] == ["###", "END"]
    assert shown["num_ctx"] == 2048

    assert _run_cli(service, ["config", "reset", "ollama", "llama3"]).exit_code == 0
    shown = json.loads(_run_cli(service, ["config", "show", "ollama", "llama3"]).output)
    assert shown["temperature"] == 0.7


def test_config_errors_map_to_exit_codes(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)
    invalid = _run_cli(service, ["config", "set", "ollama", "llama3", "--temperature", "3"])
    assert invalid.exit_code == 10
    assert _run_cli(service, ["config", "show", "ollama", " "]).exit_code == 4


def test_chat_with_attachment(settings, tmp_path) -> None:
    seen: list[httpx.Request] = []
    service = LumenService(settings, transport=httpx.MockTransport(_ollama_handler(seen)))
    notes = tmp_path / "notes.txt"
    notes.write_text("remember the milk", encoding="utf-8")

    result = _run_cli(service, ["chat", "ollama", "llama3", "What is in the file?", "--attach", str(notes)])

    assert result.exit_code == 0
    assert "Hello from llama3" in result.output
    prompt = json.loads(seen[-1].content)["prompt"]
    assert prompt.endswith("\n\nFile: notes.txt\nContent:\nremember the milk")


def test_chat_error_exit_codes(settings, no_network) -> None:
    service = LumenService(settings, transport=no_network)
    assert _run_cli(service, ["chat", "openai", "gpt-4o", "hi"]).exit_code == 5

    refused = LumenService(
        settings, transport=httpx.MockTransport(_ollama_handler([]))
    )
    result = _run_cli(refused, ["chat", "lmstudio", "qwen", "hi"])
    assert result.exit_code == 8


def test_models_invalid_key_exit_code(settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401,
            json={"type": "error", "error": {"type": "authentication_error", "message": "invalid x-api-key"}},
        )

    service = LumenService(settings, transport=httpx.MockTransport(handler))
    result = _run_cli(service, ["models", "anthropic", "--api-key", "sk-ant-wrong-key-1"])
    assert result.exit_code == 6

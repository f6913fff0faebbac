"""Tests for the model configuration store."""

from __future__ import annotations

import json
import math

import pytest

from lumen.core.errors import InvalidParameterError, NoModelSelectedError, UnknownProviderError
from lumen.core.model_config import ModelConfig, ModelConfigStore, defaults_for


@pytest.fixture
def store(tmp_path) -> ModelConfigStore:
    return ModelConfigStore(tmp_path / "model_configs.json")


@pytest.mark.parametrize(
    ("provider_id", "num_ctx"),
    [
        ("ollama", 2048),
        ("lmstudio", 2048),
        ("docker", 2048),
        ("huggingface", 2048),
        ("openai", 4096),
        ("anthropic", 8192),
        ("google", 8192),
    ],
)
def test_defaults_per_provider(provider_id, num_ctx) -> None:
    config = defaults_for(provider_id)
    assert config.temperature == 0.7
    assert config.top_p == 0.9
    assert config.top_k == 40
    assert config.repeat_penalty == 1.1
    assert config.num_ctx == num_ctx
    assert config.stop == []


def test_cloud_context_at_least_local() -> None:
    local = defaults_for("ollama").num_ctx
    for provider_id in ("openai", "anthropic", "google"):
        assert defaults_for(provider_id).num_ctx >= local


def test_unsaved_pair_returns_defaults(store) -> None:
    assert store.get_config("openai", "gpt-4o") == defaults_for("openai")


def test_returned_configs_are_independent_copies(store) -> None:
    first = store.get_config("ollama", "llama3")
    first.stop.append("###")
    first.temperature = 0.1
    second = store.get_config("ollama", "llama3")
    assert second.stop == []
    assert second.temperature == 0.7


def test_save_then_get(store) -> None:
    config = ModelConfig(
        temperature=0.2, top_p=0.5, top_k=10, repeat_penalty=1.3, num_ctx=4096, stop=["</s>"]
    )
    assert store.save_config("ollama", "llama3", config) == "saved"
    assert store.get_config("ollama", "llama3") == config
    assert store.get_config("ollama", "mistral") == defaults_for("ollama")


def test_partial_mapping_is_laid_over_provider_defaults(store) -> None:
    store.save_config("anthropic", "claude-3-haiku-20240307", {"temperature": 0.3})
    config = store.get_config("anthropic", "claude-3-haiku-20240307")
    assert config.temperature == 0.3
    assert config.num_ctx == 8192


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("temperature", 2.5),
        ("temperature", -0.1),
        ("temperature", math.nan),
        ("top_p", 1.5),
        ("top_k", 0),
        ("repeat_penalty", 0),
        ("num_ctx", 0),
    ],
)
def test_out_of_range_values_are_rejected_and_not_written(store, field, value) -> None:
    with pytest.raises(InvalidParameterError) as exc_info:
        store.save_config("ollama", "llama3", {field: value})
    assert exc_info.value.field == field
    assert exc_info.value.exit_code == 10
    assert not store.path.exists()


def test_boundary_values_are_accepted(store) -> None:
    store.save_config("ollama", "llama3", {"temperature": 0.0, "top_p": 1.0, "top_k": 1})
    store.save_config("lmstudio", "qwen", {"temperature": 2.0, "top_p": 0.0})
    assert store.get_config("lmstudio", "qwen").temperature == 2.0


def test_failed_save_keeps_previous_value(store) -> None:
    store.save_config("ollama", "llama3", {"temperature": 0.4})
    with pytest.raises(InvalidParameterError):
        store.save_config("ollama", "llama3", {"temperature": 9})
    assert store.get_config("ollama", "llama3").temperature == 0.4


def test_reset_config(store) -> None:
    store.save_config("google", "gemini-1.5-flash", {"top_k": 5})
    assert store.reset_config("google", "gemini-1.5-flash") is True
    assert store.reset_config("google", "gemini-1.5-flash") is False
    assert store.get_config("google", "gemini-1.5-flash") == defaults_for("google")
    assert json.loads(store.path.read_text(encoding="utf-8")) == {}


@pytest.mark.parametrize("model_id", ["", "   "])
def test_empty_model_id_raises(store, model_id) -> None:
    with pytest.raises(NoModelSelectedError):
        store.get_config("ollama", model_id)
    with pytest.raises(NoModelSelectedError):
        store.save_config("ollama", model_id, {})


def test_unknown_provider_raises(store) -> None:
    with pytest.raises(UnknownProviderError):
        store.get_config("mistral", "large")


def test_invalid_stored_entry_falls_back_to_defaults(store) -> None:
    store.path.write_text(
        json.dumps({"ollama": {"llama3": {"temperature": 99}}}), encoding="utf-8"
    )
    assert store.get_config("ollama", "llama3") == defaults_for("ollama")


def test_malformed_provider_entry_is_ignored(store) -> None:
    store.path.write_text(
        json.dumps({"ollama": ["oops"], "openai": {"gpt-4o": {"temperature": 0.2}}}),
        encoding="utf-8",
    )
    assert store.get_config("ollama", "llama3") == defaults_for("ollama")
    assert store.get_config("openai", "gpt-4o").temperature == 0.2

    assert store.save_config("ollama", "llama3", {"temperature": 0.4}) == "saved"
    assert store.get_config("ollama", "llama3").temperature == 0.4
    assert store.get_config("openai", "gpt-4o").temperature == 0.2


def test_non_object_model_entry_falls_back_to_defaults(store) -> None:
    store.path.write_text(json.dumps({"ollama": {"llama3": "fast"}}), encoding="utf-8")
    assert store.get_config("ollama", "llama3") == defaults_for("ollama")

"""Pytest configuration and fixtures for all tests."""

from __future__ import annotations

import os

import httpx
import pytest

from lumen.core.config import LumenSettings


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep every test away from the real ``~/.lumen`` and stray LUMEN_* variables."""
    for name in list(os.environ):
        if name.startswith("LUMEN_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LUMEN_HOME", str(tmp_path / "lumen-home"))


@pytest.fixture
def settings(tmp_path) -> LumenSettings:
    return LumenSettings(data_dir=tmp_path / "lumen")


@pytest.fixture
def no_network() -> httpx.MockTransport:
    """Transport that fails the test if any request is attempted."""

    def _handler(request: httpx.Request) -> httpx.Response:
        pytest.fail(f"unexpected network call: {request.method} {request.url}")

    return httpx.MockTransport(_handler)

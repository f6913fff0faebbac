"""Tests for shared error classification helpers."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from lumen.core.error_mapping import (
    ProviderHTTPError,
    classify_exception,
    extract_error_message,
    map_connection_error,
    map_message,
    map_status_error,
    run_with_exception_mapper,
)
from lumen.core.errors import (
    ErrorKind,
    InvalidCredentialError,
    ModelNotFoundError,
    NoModelSelectedError,
    ProviderConnectionError,
    ProviderTimeoutError,
    TransportError,
    UnknownProviderFailure,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, InvalidCredentialError),
        (403, InvalidCredentialError),
        (404, ModelNotFoundError),
        (408, ProviderTimeoutError),
        (504, ProviderTimeoutError),
    ],
)
def test_map_status_error_by_code(status, expected) -> None:
    assert isinstance(map_status_error(status, "nope"), expected)


def test_map_status_error_falls_back_to_message_then_unknown() -> None:
    assert isinstance(map_status_error(500, "upstream connection refused"), ProviderConnectionError)
    unknown = map_status_error(500, "kaboom")
    assert isinstance(unknown, UnknownProviderFailure)
    assert unknown.raw_message == "HTTP 500: kaboom"


def test_map_message_substrings() -> None:
    assert map_message("context deadline exceeded").error_code == ErrorKind.TIMEOUT
    assert map_message("dial tcp: connection refused").error_code == ErrorKind.CONNECTION_REFUSED
    assert map_message("model 'llama3' not found").error_code == ErrorKind.MODEL_NOT_FOUND
    assert map_message("Incorrect API key provided").error_code == ErrorKind.INVALID_CREDENTIAL
    assert map_message("something odd").error_code == ErrorKind.UNKNOWN


def test_map_connection_error_distinguishes_timeout() -> None:
    assert isinstance(map_connection_error("Request timed out"), ProviderTimeoutError)
    conn_err = map_connection_error("TLS handshake failed")
    assert isinstance(conn_err, ProviderConnectionError)
    assert isinstance(conn_err, TransportError)


def test_classify_exception_transport_types() -> None:
    request = httpx.Request("GET", "http://localhost:11434/api/tags")
    assert isinstance(
        classify_exception(httpx.ConnectTimeout("timed out", request=request)), ProviderTimeoutError
    )
    assert isinstance(
        classify_exception(httpx.ConnectError("[Errno 111] Connection refused", request=request)),
        ProviderConnectionError,
    )
    assert isinstance(classify_exception(asyncio.TimeoutError()), ProviderTimeoutError)
    assert isinstance(classify_exception(ProviderHTTPError(401, "bad key")), InvalidCredentialError)


def test_classify_exception_keeps_raw_message_for_unknown() -> None:
    error = classify_exception(RuntimeError("weird failure"))
    assert isinstance(error, UnknownProviderFailure)
    assert error.raw_message == "weird failure"
    assert error.exit_code == 1


def test_classified_errors_pass_through() -> None:
    original = NoModelSelectedError("ollama")
    assert classify_exception(original) is original


def test_extract_error_message_shapes() -> None:
    nested = httpx.Response(400, json={"error": {"message": "API key not valid"}})
    flat = httpx.Response(404, json={"error": "model 'x' not found"})
    plain = httpx.Response(500, text="internal error")
    assert extract_error_message(nested) == "API key not valid"
    assert extract_error_message(flat) == "model 'x' not found"
    assert extract_error_message(plain) == "internal error"


@pytest.mark.asyncio
async def test_run_with_exception_mapper_maps_raw_errors() -> None:
    async def _raise_raw() -> str:
        raise ValueError("model 'phi' not found")

    with pytest.raises(ModelNotFoundError) as exc_info:
        await run_with_exception_mapper(_raise_raw)
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_run_with_exception_mapper_never_maps_cancellation() -> None:
    async def _cancelled() -> str:
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await run_with_exception_mapper(_cancelled)


@pytest.mark.asyncio
async def test_run_with_exception_mapper_returns_value() -> None:
    async def _ok() -> str:
        return "done"

    assert await run_with_exception_mapper(_ok) == "done"

"""Shared helpers for mapping transport failures onto the error taxonomy.

Classification order:

1. errors that are already a :class:`LumenError` pass through unchanged;
2. timeout exception types map to ``timeout``;
3. connect exception types map to ``connection_refused`` unless the message
   describes a timeout;
4. HTTP status codes: 401/403 -> ``invalid_credential``, 404 ->
   ``model_not_found``, 408/504 -> ``timeout``;
5. message substrings (see the ``_*_HINTS`` tuples below);
6. everything else is ``unknown`` and keeps the raw message.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from lumen.core.errors import (
    InvalidCredentialError,
    LumenError,
    ModelNotFoundError,
    ProviderConnectionError,
    ProviderTimeoutError,
    UnknownProviderFailure,
)

_TIMEOUT_HINTS = ("timed out", "timeout", "deadline exceeded")
_CONNECTION_HINTS = (
    "connection refused",
    "connection error",
    "all connection attempts failed",
    "network is unreachable",
    "name or service not known",
    "nodename nor servname",
    "no such host",
)
_CREDENTIAL_HINTS = (
    "invalid api key",
    "incorrect api key",
    "invalid x-api-key",
    "api key not valid",
    "unauthorized",
    "authentication",
)
_AUTH_STATUSES = (401, 403)
_TIMEOUT_STATUSES = (408, 504)


class ProviderHTTPError(Exception):
    """Non-success HTTP response from a provider, before classification."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.detail = message


def is_timeout_message(message: str) -> bool:
    lowered = message.lower()
    return any(hint in lowered for hint in _TIMEOUT_HINTS)


def is_model_not_found_message(message: str) -> bool:
    lowered = message.lower()
    return "not found" in lowered and "model" in lowered


def extract_error_message(response: httpx.Response) -> str:
    """Pull a readable error string out of a provider error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
        if payload.get("message"):
            return str(payload["message"])
    return str(payload)


def raise_for_provider_status(response: httpx.Response) -> None:
    """Raise ``ProviderHTTPError`` for any non-2xx response."""
    if response.is_success:
        return
    raise ProviderHTTPError(response.status_code, extract_error_message(response))


def map_message(message: str) -> LumenError:
    """Classify a bare error message by known substrings."""
    lowered = message.lower()
    if is_timeout_message(message):
        return ProviderTimeoutError(f"Request timed out: {message}")
    if any(hint in lowered for hint in _CONNECTION_HINTS):
        return ProviderConnectionError(f"Connection error: {message}")
    if is_model_not_found_message(message):
        return ModelNotFoundError(f"Model not found: {message}")
    if any(hint in lowered for hint in _CREDENTIAL_HINTS):
        return InvalidCredentialError(f"Authentication failed: {message}")
    return UnknownProviderFailure(message)


def map_status_error(status_code: int, message: str) -> LumenError:
    """Classify an HTTP status plus its error text."""
    if status_code in _AUTH_STATUSES:
        return InvalidCredentialError(f"Authentication failed ({status_code}): {message}")
    if status_code == 404:
        return ModelNotFoundError(f"Model not found ({status_code}): {message}")
    if status_code in _TIMEOUT_STATUSES:
        return ProviderTimeoutError(f"Request timed out ({status_code}): {message}")
    mapped = map_message(message)
    if isinstance(mapped, UnknownProviderFailure):
        return UnknownProviderFailure(f"HTTP {status_code}: {message}")
    return mapped


def map_connection_error(message: str) -> LumenError:
    """Map a connect-phase failure, keeping timeouts distinct."""
    if is_timeout_message(message):
        return ProviderTimeoutError(f"Request timed out: {message}")
    return ProviderConnectionError(f"Connection error: {message}")


def classify_exception(exc: BaseException) -> LumenError:
    """Map any transport exception onto the error taxonomy."""
    if isinstance(exc, LumenError):
        return exc
    message = str(exc) or type(exc).__name__
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return ProviderTimeoutError(f"Request timed out: {message}")
    if isinstance(exc, (httpx.ConnectError, ConnectionError)):
        return map_connection_error(message)
    if isinstance(exc, ProviderHTTPError):
        return map_status_error(exc.status_code, exc.detail)
    if isinstance(exc, httpx.HTTPStatusError):
        return map_status_error(exc.response.status_code, extract_error_message(exc.response))
    return map_message(message)


async def run_with_exception_mapper(
    request_fn: Callable[[], Awaitable[Any]],
    mapper: Optional[Callable[[Exception], LumenError]] = None,
) -> Any:
    """Execute a request and re-raise failures as classified errors.

    Cancellation is never mapped.
    """
    mapper = mapper or classify_exception
    try:
        return await request_fn()
    except asyncio.CancelledError:
        raise
    except LumenError:
        raise
    except Exception as exc:
        raise mapper(exc) from exc

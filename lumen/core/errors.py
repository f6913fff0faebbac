"""Error taxonomy shared by discovery, catalog resolution and chat dispatch.

Every failure that reaches a caller is one of the classes below. Each carries a
stable ``error_code`` (an :class:`ErrorKind`), a remediation hint for the UI and
the exit code the command line uses for it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stable error codes consumed by the UI and the CLI."""

    UNKNOWN_PROVIDER = "unknown_provider"
    UNSUPPORTED_PROVIDER_CLASS = "unsupported_provider_class"
    NO_MODEL_SELECTED = "no_model_selected"
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    MODEL_NOT_FOUND = "model_not_found"
    INVALID_PARAMETER = "invalid_parameter"
    UNKNOWN = "unknown"


EXIT_CODES = {
    ErrorKind.UNKNOWN: 1,
    ErrorKind.UNKNOWN_PROVIDER: 2,
    ErrorKind.UNSUPPORTED_PROVIDER_CLASS: 3,
    ErrorKind.NO_MODEL_SELECTED: 4,
    ErrorKind.MISSING_CREDENTIAL: 5,
    ErrorKind.INVALID_CREDENTIAL: 6,
    ErrorKind.TIMEOUT: 7,
    ErrorKind.CONNECTION_REFUSED: 8,
    ErrorKind.MODEL_NOT_FOUND: 9,
    ErrorKind.INVALID_PARAMETER: 10,
}


class LumenError(Exception):
    """Base class for classified errors."""

    error_code: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.error_code]

    def to_dict(self) -> dict:
        payload = {"kind": self.error_code.value, "message": self.message}
        if self.remediation:
            payload["remediation"] = self.remediation
        return payload


class UnknownProviderError(LumenError):
    """Provider id is not in the registry."""

    error_code = ErrorKind.UNKNOWN_PROVIDER

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown provider: {provider_id!r}")
        self.provider_id = provider_id


class UnsupportedProviderClassError(LumenError):
    """Operation is not available for the provider's class (local vs cloud)."""

    error_code = ErrorKind.UNSUPPORTED_PROVIDER_CLASS

    def __init__(self, provider_id: str, operation: str, expected: str) -> None:
        super().__init__(
            f"{operation} requires a {expected} provider; {provider_id!r} is not one"
        )
        self.provider_id = provider_id
        self.operation = operation
        self.expected = expected


class NoModelSelectedError(LumenError):
    """A model id is required but none was given."""

    error_code = ErrorKind.NO_MODEL_SELECTED

    def __init__(self, provider_id: str) -> None:
        super().__init__(
            f"No model selected for provider {provider_id!r}",
            remediation="Select a model before sending a message.",
        )
        self.provider_id = provider_id


class MissingCredentialError(LumenError):
    """No API key is stored for a cloud provider."""

    error_code = ErrorKind.MISSING_CREDENTIAL

    def __init__(self, provider_id: str) -> None:
        super().__init__(
            f"No API key configured for {provider_id!r}",
            remediation=f"Add an API key for {provider_id} in the connection settings.",
        )
        self.provider_id = provider_id


class InvalidCredentialError(LumenError):
    """The provider rejected the API key."""

    error_code = ErrorKind.INVALID_CREDENTIAL

    def __init__(self, message: str, *, provider_id: Optional[str] = None) -> None:
        super().__init__(
            message,
            remediation="Check the API key and enter it again.",
        )
        self.provider_id = provider_id


class TransportError(LumenError):
    """Network-level failure talking to a provider."""


class ProviderTimeoutError(TransportError):
    """The provider did not answer within the configured time."""

    error_code = ErrorKind.TIMEOUT

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(
            message,
            remediation=remediation
            or "Try a smaller or faster model, reduce the context size, or try again.",
        )


class ProviderConnectionError(TransportError):
    """The provider endpoint could not be reached."""

    error_code = ErrorKind.CONNECTION_REFUSED

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(
            message,
            remediation=remediation or "Make sure the provider service is running and reachable.",
        )


class ModelNotFoundError(LumenError):
    """The requested model is not installed or not offered by the provider."""

    error_code = ErrorKind.MODEL_NOT_FOUND

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(
            message,
            remediation=remediation or "Check that the model is installed or available.",
        )


class InvalidParameterError(LumenError):
    """A generation parameter is outside its documented range."""

    error_code = ErrorKind.INVALID_PARAMETER

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid value for {field}: {message}")
        self.field = field


class UnknownProviderFailure(LumenError):
    """Unclassified provider failure; keeps the raw message for diagnostics."""

    error_code = ErrorKind.UNKNOWN

    def __init__(self, raw_message: str) -> None:
        super().__init__(raw_message or "Unknown provider error")
        self.raw_message = raw_message

"""Failure taxonomy shared by every client layer.

Every error carries a short human-readable ``message`` and a ``retryable``
flag. Only the session manager and the query cache look at ``retryable``;
accessors just raise.
"""

from __future__ import annotations

from typing import Any


DEFAULT_MESSAGE = "Operation failed"
NETWORK_MESSAGE = "Network error. Please check your connection"
SERVER_MESSAGE = "Something went wrong. Please try again later"
SESSION_EXPIRED_MESSAGE = "Session expired"


class NaxumError(Exception):
    """Base class for client errors."""

    retryable = False

    def __init__(self, message: str = DEFAULT_MESSAGE, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(NaxumError):
    """Input rejected locally, before any network call."""


class ApiError(NaxumError):
    """Non-2xx response from the API (4xx with the server's message)."""


class AuthenticationError(ApiError):
    """HTTP 401. Stored credentials have already been cleared."""


class MalformedResponseError(ApiError):
    """
    2xx response whose body is not the expected shape.

    Never retried: the request itself succeeded, so repeating a mutation
    would apply it twice.
    """


class ServerError(ApiError):
    """HTTP 5xx."""

    retryable = True

    def __init__(self, message: str = SERVER_MESSAGE, status_code: int | None = None):
        super().__init__(message, status_code)


class NetworkError(NaxumError):
    """Transport failure or timeout."""

    retryable = True

    def __init__(self, message: str = NETWORK_MESSAGE):
        super().__init__(message)


def extract_server_message(body: Any) -> str | None:
    """
    Pull the server's message out of an error body.

    Accepts ``{"message": ...}`` and ``{"error": {"message": ...}}``.
    """
    if not isinstance(body, dict):
        return None

    message = body.get("message")
    if isinstance(message, str) and message.strip():
        return message

    nested = body.get("error")
    if isinstance(nested, dict):
        message = nested.get("message")
        if isinstance(message, str) and message.strip():
            return message
    elif isinstance(nested, str) and nested.strip():
        return nested

    return None


def is_retryable(exc: BaseException) -> bool:
    """Whether an automatic retry may be attempted for this failure."""
    return isinstance(exc, NaxumError) and exc.retryable


def error_message(exc: BaseException, default: str = DEFAULT_MESSAGE) -> str:
    """Resolve any failure to a short string suitable for the end user."""
    if isinstance(exc, NetworkError | ServerError):
        return exc.message
    if isinstance(exc, NaxumError) and exc.message and exc.message != DEFAULT_MESSAGE:
        return exc.message
    return default

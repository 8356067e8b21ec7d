"""Response envelope handling shared by all accessors.

Any body that does not decode into the expected records raises
``MalformedResponseError``, never a bare ``ValueError``.
"""

from typing import Any, Callable, Mapping, TypeVar

from naxum_team.errors import MalformedResponseError

T = TypeVar("T")


def unwrap(body: Any) -> Any:
    """
    Return the payload of a ``{"data": <payload>}`` response body.

    Raises:
        MalformedResponseError: If the body is not an envelope
    """
    if not isinstance(body, dict) or "data" not in body:
        raise MalformedResponseError(
            f"Malformed API response: expected a 'data' envelope, got {type(body).__name__}"
        )
    return body["data"]


def parse_payload(payload: Any, parse: Callable[[Mapping[str, Any]], T]) -> T:
    """Build one record from a decoded payload object."""
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Malformed API response: expected an object, got {type(payload).__name__}"
        )
    try:
        return parse(payload)
    except (ValueError, TypeError, KeyError) as e:
        raise MalformedResponseError(f"Malformed API response: {e}") from e


def unwrap_record(body: Any, parse: Callable[[Mapping[str, Any]], T]) -> T:
    """Unwrap an envelope whose payload is a single record."""
    return parse_payload(unwrap(body), parse)


def unwrap_optional(body: Any, parse: Callable[[Mapping[str, Any]], T]) -> T | None:
    """Like ``unwrap_record``, but a null payload yields None."""
    payload = unwrap(body)
    if payload is None:
        return None
    return parse_payload(payload, parse)


def unwrap_list(body: Any, parse: Callable[[Mapping[str, Any]], T]) -> list[T]:
    """Unwrap an envelope whose payload is a list of records."""
    payload = unwrap(body)
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Malformed API response: expected a list, got {type(payload).__name__}")
    return [parse_payload(item, parse) for item in payload]

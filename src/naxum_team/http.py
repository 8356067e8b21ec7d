"""Shared HTTP client adapter for the REST API.

Wraps a single ``httpx.AsyncClient``:

- request hook: attach ``Authorization: Bearer <token>`` when one is stored
- response hook: on 401 clear the credential store and publish a
  session-invalidated signal to subscribers
- every non-2xx response or transport failure is raised as a typed
  ``NaxumError`` (see ``naxum_team.errors``)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable

import httpx

from naxum_team.config import ClientConfig
from naxum_team.credentials import CredentialStore
from naxum_team.errors import (
    DEFAULT_MESSAGE,
    ApiError,
    AuthenticationError,
    NetworkError,
    ServerError,
    extract_server_message,
)

logger = logging.getLogger(__name__)

InvalidationListener = Callable[[], Awaitable[None] | None]


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def error_from_response(response: httpx.Response) -> ApiError:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    message = extract_server_message(_response_body(response))

    if status == 401:
        return AuthenticationError(message or DEFAULT_MESSAGE, status)
    if status >= 500:
        return ServerError(status_code=status)
    return ApiError(message or DEFAULT_MESSAGE, status)


class ApiClient:
    """
    One client per process, shared by every accessor.

    Usage:
        async with ApiClient(config, store) as client:
            body = await client.get("/team/members")
    """

    def __init__(
        self,
        config: ClientConfig,
        store: CredentialStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.store = store
        self._listeners: list[InvalidationListener] = []
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=httpx.Timeout(config.timeout),
            headers={"Content-Type": "application/json"},
            event_hooks={
                "request": [self._attach_token],
                "response": [self._handle_unauthorized],
            },
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Session-invalidated signal
    # ------------------------------------------------------------------

    def on_session_invalidated(self, listener: InvalidationListener) -> Callable[[], None]:
        """Register a listener for 401-driven credential clearing. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _publish_invalidated(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Session-invalidated listener failed")

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def _attach_token(self, request: httpx.Request) -> None:
        token = await self.store.get_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _handle_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return

        logger.info("Received 401 for %s %s; clearing stored credentials",
                    response.request.method, response.request.url.path)
        await self.store.clear()
        await self._publish_invalidated()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            AuthenticationError: on 401 (credentials already cleared)
            ServerError: on 5xx
            ApiError: on any other non-2xx
            NetworkError: on timeout or transport failure
        """
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out after %.0fs", method, path, self.config.timeout)
            raise NetworkError() from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError() from e

        if response.is_error:
            error = error_from_response(response)
            logger.debug("%s %s -> HTTP %s: %s", method, path, response.status_code, error.message)
            raise error

        return _response_body(response)

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

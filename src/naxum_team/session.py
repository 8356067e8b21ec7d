"""Client-side session state machine.

States::

    unauthenticated --login/register--> authenticating --ok--> authenticated
          ^                                   |                     |
          +-----------------failure-----------+                     |
          +-------------logout / 401 session invalidated-----------+

``SessionManager`` is the only place that changes ``Session``. Invariant:
``status is AUTHENTICATED`` iff both ``user`` and ``token`` are set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

from naxum_team.errors import (
    SESSION_EXPIRED_MESSAGE,
    NaxumError,
    ValidationError,
    error_message,
)
from naxum_team.http import ApiClient
from naxum_team.models import User
from naxum_team.services import auth
from naxum_team.services.auth import AuthResult

if TYPE_CHECKING:
    from naxum_team.cache import QueryCache

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
LOGIN_FAILED = "Login failed"
REGISTRATION_FAILED = "Registration failed"


class AuthStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """
    Immutable snapshot of who the client believes is logged in.

    ``is_loading`` starts True and stays True until the first
    ``restore_session`` completes, so a navigation guard can hold still.
    """
    status: AuthStatus = AuthStatus.UNAUTHENTICATED
    user: User | None = None
    token: str | None = None
    error: str | None = None
    is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    @property
    def is_settled(self) -> bool:
        return not self.is_loading and self.status is not AuthStatus.AUTHENTICATING


SessionListener = Callable[[Session], None]


class SessionManager:
    """Owns the ``Session`` and every transition on it."""

    def __init__(self, client: ApiClient, cache: "QueryCache | None" = None, retry: int = 1):
        self._client = client
        self._cache = cache
        self._retry = retry
        self._session = Session()
        self._listeners: list[SessionListener] = []
        self._unsubscribe_invalidation = client.on_session_invalidated(self._on_session_invalidated)

    @property
    def session(self) -> Session:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Detach from the HTTP client's invalidation signal."""
        self._unsubscribe_invalidation()

    def _set(self, **changes) -> None:
        self._session = replace(self._session, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception:
                logger.exception("Session listener failed")

    def _reset(self, error: str | None = None) -> None:
        self._set(
            status=AuthStatus.UNAUTHENTICATED,
            user=None,
            token=None,
            error=error,
            is_loading=False,
        )
        if self._cache is not None:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _authenticate(
        self,
        call: Callable[[], Awaitable[AuthResult]],
        default_message: str,
    ) -> None:
        self._set(status=AuthStatus.AUTHENTICATING, error=None, is_loading=True)

        attempts = self._retry + 1
        for attempt in range(attempts):
            try:
                result = await call()
                break
            except Exception as exc:
                retryable = isinstance(exc, NaxumError) and exc.retryable
                if retryable and attempt < attempts - 1:
                    logger.info("Authentication attempt failed (%s); retrying once", exc)
                    continue
                self._set(
                    status=AuthStatus.UNAUTHENTICATED,
                    user=None,
                    token=None,
                    error=error_message(exc, default_message),
                    is_loading=False,
                )
                raise

        self._set(
            status=AuthStatus.AUTHENTICATED,
            user=result.user,
            token=result.token,
            error=None,
            is_loading=False,
        )
        logger.info("Authenticated as user %s (%s)", result.user.id, result.user.role)

    def _reject(self, message: str) -> None:
        self._set(error=message)
        raise ValidationError(message)

    async def login(self, email: str, password: str) -> None:
        """
        Log in and persist credentials.

        Raises:
            ValidationError: If email or password is empty (no request sent)
            NaxumError: Whatever the API call raised; ``session.error`` holds
                the human-readable message
        """
        if not email or not password:
            self._reject("Please enter email and password")

        await self._authenticate(lambda: auth.login(self._client, email, password), LOGIN_FAILED)

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        phone: str | None = None,
        invite_code: str | None = None,
    ) -> None:
        """Create an account; same contract as ``login``."""
        if not email or not password or not name:
            self._reject("Please fill in all required fields")
        if len(password) < MIN_PASSWORD_LENGTH:
            self._reject(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        await self._authenticate(
            lambda: auth.register(self._client, email, password, name, phone, invite_code),
            REGISTRATION_FAILED,
        )

    async def logout(self) -> None:
        """
        Log out. Never fails: the remote call is best effort and local state
        is always reset.
        """
        try:
            # Clears the store itself, whatever the remote call does
            await auth.logout(self._client)
        except Exception as exc:
            logger.warning("Logout error: %s", exc)
            await self._clear_store_quietly()
        finally:
            self._reset()
        logger.info("Logged out")

    async def _clear_store_quietly(self) -> None:
        try:
            await self._client.store.clear()
        except OSError as exc:
            logger.error("Could not remove stored credentials: %s", exc)

    async def restore_session(self) -> Session:
        """
        Restore from persisted credentials without a network call.

        A revoked token is discovered on the next request (401), which then
        invalidates the session through the HTTP client signal.
        """
        self._set(is_loading=True)
        try:
            stored = await self._client.store.load()
        except OSError as exc:
            logger.error("Error loading stored auth: %s", exc)
            self._reset()
            return self._session

        if stored.is_complete:
            self._set(
                status=AuthStatus.AUTHENTICATED,
                user=stored.user,
                token=stored.token,
                error=None,
                is_loading=False,
            )
        else:
            self._set(status=AuthStatus.UNAUTHENTICATED, user=None, token=None, is_loading=False)
        return self._session

    async def refresh_user(self) -> User:
        """Re-fetch the user record (GET /auth/me) and persist it."""
        user = await auth.get_me(self._client)
        await self._client.store.update_user(user)
        if self._session.is_authenticated:
            self._set(user=user)
        return user

    def clear_error(self) -> None:
        self._set(error=None)

    def _on_session_invalidated(self) -> None:
        # Failed login/register attempts settle their own state
        if self._session.status is not AuthStatus.AUTHENTICATED:
            return
        logger.warning("Session invalidated by the server")
        self._reset(error=SESSION_EXPIRED_MESSAGE)

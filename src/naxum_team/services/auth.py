"""Authentication accessors: login, register, current user, logout."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from naxum_team.errors import MalformedResponseError, NaxumError
from naxum_team.http import ApiClient
from naxum_team.models import User
from naxum_team.services.envelope import parse_payload, unwrap, unwrap_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Payload of a successful login or registration."""
    user: User
    token: str


def _parse_auth_payload(body: object) -> AuthResult:
    payload = unwrap(body)
    if not isinstance(payload, dict):
        raise MalformedResponseError("Malformed auth response: expected an object")

    token = payload.get("token")
    if not isinstance(token, str) or not token:
        raise MalformedResponseError("Malformed auth response: missing token")

    return AuthResult(user=parse_payload(payload.get("user"), User.from_dict), token=token)


async def login(client: ApiClient, email: str, password: str) -> AuthResult:
    """
    Authenticate with email and password and persist the credentials.

    Raises:
        ApiError: If the API rejects the credentials
    """
    body = await client.post("/auth/login", json={"email": email, "password": password})
    result = _parse_auth_payload(body)

    await client.store.save(result.token, result.user)
    return result


async def register(
    client: ApiClient,
    email: str,
    password: str,
    name: str,
    phone: str | None = None,
    invite_code: str | None = None,
) -> AuthResult:
    """
    Create an account and persist the credentials.

    ``invite_code`` links the new account to the inviting leader server-side.
    """
    payload: dict[str, object] = {"email": email, "password": password, "name": name}
    if phone:
        payload["phone"] = phone
    if invite_code:
        payload["inviteCode"] = invite_code

    body = await client.post("/auth/register", json=payload)
    result = _parse_auth_payload(body)

    await client.store.save(result.token, result.user)
    return result


async def get_me(client: ApiClient) -> User:
    body = await client.get("/auth/me")
    return unwrap_record(body, User.from_dict)


async def logout(client: ApiClient) -> None:
    """
    Notify the API (best effort), then always clear local credentials.
    """
    try:
        await client.post("/auth/logout")
    except NaxumError as e:
        logger.info("Remote logout failed (%s); clearing local credentials anyway", e.message)
    finally:
        await client.store.clear()


async def get_stored_user(client: ApiClient) -> User | None:
    return await client.store.get_user()


async def get_stored_token(client: ApiClient) -> str | None:
    return await client.store.get_token()

"""Persisted credential store (session token + cached user profile)."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

# Cross-platform file locking
if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

from naxum_team.models import User

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


def _lock_file(file_handle) -> None:
    """Acquire exclusive lock on file (cross-platform)."""
    if sys.platform == "win32":
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)
    else:
        fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)


def _unlock_file(file_handle) -> None:
    """Release lock on file (cross-platform)."""
    if sys.platform == "win32":
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)


@dataclass(frozen=True)
class StoredCredentials:
    """Snapshot of the persisted slot. Either field may be missing."""
    token: str | None = None
    user: User | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.token) and self.user is not None


class CredentialStore:
    """
    Single global slot holding ``token`` and ``user``.

    Stored in: ~/.naxum-team/credentials.json (0600). Every public method is
    one scoped operation under an asyncio lock, and writes go through a
    temp file + rename, so a reader never sees half of a token/user pair.
    Writers in other processes are kept out by an exclusive lock on the
    sibling ``.lock`` file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(".lock")
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Raw file I/O
    # ------------------------------------------------------------------

    @contextmanager
    def _file_lock(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_handle:
            _lock_file(lock_handle)
            try:
                yield
            finally:
                _unlock_file(lock_handle)

    def _read_raw(self) -> dict[str, object]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Corrupted credential file %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring credential file %s: expected an object", self.path)
            return {}
        return data

    def _write_raw(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: temp file, then rename
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(self.path)
        self.path.chmod(0o600)

    @staticmethod
    def _decode(data: dict[str, object]) -> StoredCredentials:
        token = data.get(TOKEN_KEY)
        token = token if isinstance(token, str) and token else None

        user = None
        raw_user = data.get(USER_KEY)
        if isinstance(raw_user, str):
            # Tolerate the user record stored as a JSON string
            try:
                raw_user = json.loads(raw_user)
            except json.JSONDecodeError:
                raw_user = None
        if isinstance(raw_user, dict):
            try:
                user = User.from_dict(raw_user)
            except (ValueError, TypeError) as e:
                logger.warning("Ignoring stored user record: %s", e)

        return StoredCredentials(token=token, user=user)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self) -> StoredCredentials:
        """Read token and user together."""
        async with self._lock:
            return self._decode(self._read_raw())

    async def get_token(self) -> str | None:
        return (await self.load()).token

    async def get_user(self) -> User | None:
        return (await self.load()).user

    async def save(self, token: str, user: User) -> None:
        """Persist a complete token/user pair in one write."""
        if not token:
            raise ValueError("Cannot persist an empty session token")

        async with self._lock:
            with self._file_lock():
                self._write_raw({TOKEN_KEY: token, USER_KEY: user.to_dict()})
        logger.debug("Stored credentials for user %s", user.id)

    async def update_user(self, user: User) -> None:
        """Replace the cached user, keeping the token. No-op when logged out."""
        async with self._lock:
            with self._file_lock():
                data = self._read_raw()
                if not data.get(TOKEN_KEY):
                    return
                data[USER_KEY] = user.to_dict()
                self._write_raw(data)

    async def clear(self) -> None:
        """Remove token and user. Safe to call when nothing is stored."""
        async with self._lock:
            if not self.path.exists():
                return
            with self._file_lock():
                self.path.unlink(missing_ok=True)
            logger.debug("Cleared stored credentials at %s", self.path)

"""Client configuration loaded from the environment."""

from dataclasses import dataclass, field, replace
from pathlib import Path
import os


DEFAULT_API_URL = "http://localhost:3300/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_STALE_TIME = 5 * 60.0
DEFAULT_RETRY = 1


def get_home_dir() -> Path:
    """Get the directory holding persisted client state (~/.naxum-team)."""
    override = os.getenv("NAXUM_HOME")
    if override:
        return Path(override)
    return Path.home() / ".naxum-team"


@dataclass(frozen=True)
class ClientConfig:
    """
    Runtime settings for the client core.

    Fields:
    - api_url: REST API base URL (NAXUM_API_URL, then API_URL)
    - timeout: per-request timeout in seconds
    - stale_time: seconds before a cached query is refetched
    - query_retry / mutation_retry: automatic retries after a failure
    - credentials_path: JSON file holding the persisted token and user
    """
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    stale_time: float = DEFAULT_STALE_TIME
    query_retry: int = DEFAULT_RETRY
    mutation_retry: int = DEFAULT_RETRY
    credentials_path: Path = field(default_factory=lambda: get_home_dir() / "credentials.json")

    def with_overrides(self, **changes) -> "ClientConfig":
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_config() -> ClientConfig:
    """
    Build configuration from environment variables.

    NAXUM_API_URL takes precedence over the generic API_URL; both fall back
    to the local development server.
    """
    api_url = os.getenv("NAXUM_API_URL") or os.getenv("API_URL") or DEFAULT_API_URL
    timeout = float(os.getenv("NAXUM_TIMEOUT", DEFAULT_TIMEOUT))

    return ClientConfig(
        api_url=api_url.rstrip("/"),
        timeout=timeout,
        credentials_path=get_home_dir() / "credentials.json",
    )

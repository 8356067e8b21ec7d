"""
Client core for the Naxum team and task management service.

Layers, leaf first:
- credentials: persisted token + user slot
- http: shared httpx client (bearer injection, 401 handling)
- services: stateless accessors per API domain
- session: authentication state machine
- cache / queries: query cache with declared mutation invalidation
"""

from naxum_team.app import AppContext, open_app
from naxum_team.cache import InvalidationRule, QueryCache, make_key
from naxum_team.config import ClientConfig, load_config
from naxum_team.credentials import CredentialStore, StoredCredentials
from naxum_team.errors import (
    ApiError,
    AuthenticationError,
    NaxumError,
    NetworkError,
    ServerError,
    ValidationError,
    error_message,
)
from naxum_team.http import ApiClient
from naxum_team.queries import MUTATION_INVALIDATIONS, TeamQueries
from naxum_team.session import AuthStatus, Session, SessionManager

__version__ = "0.1.0"

__all__ = [
    # Wiring
    "AppContext",
    "open_app",
    "ClientConfig",
    "load_config",
    # Persistence and transport
    "CredentialStore",
    "StoredCredentials",
    "ApiClient",
    # Session
    "AuthStatus",
    "Session",
    "SessionManager",
    # Cache
    "QueryCache",
    "InvalidationRule",
    "make_key",
    "TeamQueries",
    "MUTATION_INVALIDATIONS",
    # Errors
    "NaxumError",
    "ValidationError",
    "ApiError",
    "AuthenticationError",
    "NetworkError",
    "ServerError",
    "error_message",
]

"""Wiring of the client core into one owned context."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from naxum_team.cache import QueryCache
from naxum_team.config import ClientConfig, load_config
from naxum_team.credentials import CredentialStore
from naxum_team.http import ApiClient
from naxum_team.queries import TeamQueries, create_query_cache
from naxum_team.session import SessionManager


@dataclass
class AppContext:
    """Everything one client process shares: no module-level globals."""
    config: ClientConfig
    store: CredentialStore
    client: ApiClient
    cache: QueryCache
    session: SessionManager
    queries: TeamQueries


@asynccontextmanager
async def open_app(
    config: ClientConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[AppContext]:
    """
    Build the context, restore the stored session and tear down on exit.

    Usage:
        async with open_app() as app:
            if app.session.session.is_authenticated:
                print(await app.queries.team_stats())
    """
    config = config or load_config()
    store = CredentialStore(config.credentials_path)
    client = ApiClient(config, store, transport=transport)
    cache = create_query_cache(config.stale_time, config.query_retry, config.mutation_retry)
    session = SessionManager(client, cache)

    try:
        await session.restore_session()
        yield AppContext(
            config=config,
            store=store,
            client=client,
            cache=cache,
            session=session,
            queries=TeamQueries(client, cache),
        )
    finally:
        session.close()
        await client.aclose()

"""Tests for the wired client context."""

import httpx
import pytest
import respx

from naxum_team.app import open_app
from naxum_team.errors import AuthenticationError


@pytest.mark.asyncio
async def test_open_app_restores_stored_session(config, store, leader):
    await store.save("tok-abc", leader)

    async with open_app(config) as client_app:
        assert client_app.session.session.is_authenticated
        assert client_app.session.session.user == leader
        assert client_app.cache is client_app.queries.cache


@pytest.mark.asyncio
@pytest.mark.respx(base_url="https://api.example.com")
async def test_401_expires_session_and_clears_cache(respx_mock: respx.MockRouter, config, store, leader):
    await store.save("tok-abc", leader)
    respx_mock.get("/team/members").mock(return_value=httpx.Response(200, json={"data": []}))
    respx_mock.get("/team/stats").mock(return_value=httpx.Response(401))

    async with open_app(config) as client_app:
        await client_app.queries.team_members()
        with pytest.raises(AuthenticationError):
            await client_app.queries.team_stats()

        assert client_app.session.session.error == "Session expired"
        assert client_app.cache.keys() == []
        assert (await store.load()).token is None

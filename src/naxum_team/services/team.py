"""Team accessors: members, own team, hierarchy, statistics, leader."""

from __future__ import annotations

from typing import Any

from naxum_team.http import ApiClient
from naxum_team.models import TeamMember, TeamStats
from naxum_team.errors import MalformedResponseError
from naxum_team.services.envelope import unwrap, unwrap_list, unwrap_optional


async def get_team_members(client: ApiClient) -> list[TeamMember]:
    body = await client.get("/team/members")
    return unwrap_list(body, TeamMember.from_dict)


async def get_my_team(client: ApiClient) -> list[TeamMember]:
    body = await client.get("/team/my-team")
    return unwrap_list(body, TeamMember.from_dict)


async def get_team_hierarchy(client: ApiClient) -> list[dict[str, Any]]:
    """Nested hierarchy nodes, returned as the API sends them."""
    body = await client.get("/team/hierarchy")
    payload = unwrap(body)
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Malformed API response: expected a list, got {type(payload).__name__}")
    return payload


async def get_team_stats(client: ApiClient) -> TeamStats:
    body = await client.get("/team/stats")
    return unwrap_optional(body, TeamStats.from_dict) or TeamStats()


async def get_team_leader(client: ApiClient) -> TeamMember | None:
    """The user's leader, or None for top-level leaders."""
    body = await client.get("/team/leader")
    return unwrap_optional(body, TeamMember.from_dict)

"""Named queries and mutations of the app, backed by ``QueryCache``.

``MUTATION_INVALIDATIONS`` is the single place that says which cached
queries a mutation makes stale. Nothing is inferred: a mutation missing from
the table cannot run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from naxum_team.cache import InvalidationRule, QueryCache, make_key
from naxum_team.errors import ApiError
from naxum_team.http import ApiClient
from naxum_team.models import Contact, Invitation, Task, TaskStatus, TeamMember, TeamStats, User
from naxum_team.services import auth, contacts, tasks, team

logger = logging.getLogger(__name__)

# Query key roots
CURRENT_USER = "currentUser"
TEAM_MEMBERS = "teamMembers"
MY_TEAM = "myTeam"
TEAM_HIERARCHY = "teamHierarchy"
TEAM_STATS = "teamStats"
TEAM_LEADER = "teamLeader"
TASKS = "tasks"
TASK = "task"
INVITATIONS = "invitations"

MUTATION_INVALIDATIONS: dict[str, tuple[InvalidationRule, ...]] = {
    "create_task": (
        InvalidationRule((TASKS,)),
        InvalidationRule((TEAM_STATS,)),
    ),
    "update_task": (
        InvalidationRule((TASKS,)),
        InvalidationRule((TASK,), id_field="id"),
        InvalidationRule((TEAM_STATS,)),
    ),
    "delete_task": (
        InvalidationRule((TASKS,)),
        InvalidationRule((TASK,), id_field="id"),
        InvalidationRule((TEAM_STATS,)),
    ),
    "create_invitation": (
        InvalidationRule((INVITATIONS,)),
        InvalidationRule((TEAM_MEMBERS,)),
    ),
}


def tasks_key(assigned_to: int | None = None, status: str | None = None):
    return make_key(TASKS, assigned_to=assigned_to or None, status=status or None)


class TeamQueries:
    """
    Cached reads and invalidating writes over the remote accessors.

    Usage:
        queries = TeamQueries(client, cache)
        pending = await queries.tasks(status="pending")
        await queries.update_task(pending[0].id, status="completed")
    """

    def __init__(self, client: ApiClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def current_user(self) -> User:
        # A failing /auth/me means the session is gone; retrying cannot help
        return await self.cache.fetch(
            make_key(CURRENT_USER), lambda: auth.get_me(self.client), retry=0
        )

    async def team_members(self) -> list[TeamMember]:
        return await self.cache.fetch(make_key(TEAM_MEMBERS), lambda: team.get_team_members(self.client))

    async def my_team(self) -> list[TeamMember]:
        return await self.cache.fetch(make_key(MY_TEAM), lambda: team.get_my_team(self.client))

    async def team_hierarchy(self) -> list[dict[str, Any]]:
        return await self.cache.fetch(make_key(TEAM_HIERARCHY), lambda: team.get_team_hierarchy(self.client))

    async def team_stats(self) -> TeamStats:
        return await self.cache.fetch(make_key(TEAM_STATS), lambda: team.get_team_stats(self.client))

    async def team_leader(self) -> TeamMember | None:
        return await self.cache.fetch(make_key(TEAM_LEADER), lambda: team.get_team_leader(self.client))

    async def tasks(self, assigned_to: int | None = None, status: str | None = None) -> list[Task]:
        return await self.cache.fetch(
            tasks_key(assigned_to, status),
            lambda: tasks.get_tasks(self.client, assigned_to=assigned_to, status=status),
        )

    async def task(self, task_id: int) -> Task:
        """
        Single task, looked up in the unfiltered task list.

        Raises:
            ApiError: "Task not found" when the id is not in the list
        """

        async def load() -> Task:
            for item in await tasks.get_tasks(self.client):
                if item.id == task_id:
                    return item
            raise ApiError("Task not found", 404)

        return await self.cache.fetch(make_key(TASK, task_id), load)

    async def invitations(self) -> list[Invitation]:
        return await self.cache.fetch(make_key(INVITATIONS), lambda: contacts.get_invitations(self.client))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_task(
        self,
        title: str,
        assigned_to: int | None,
        description: str | None = None,
        due_date: str | None = None,
    ) -> Task:
        return await self.cache.mutate(
            "create_task",
            lambda: tasks.create_task(self.client, title, assigned_to, description, due_date),
        )

    async def update_task(self, task_id: int, **changes: Any) -> Task:
        return await self.cache.mutate(
            "update_task",
            lambda: tasks.update_task(self.client, task_id, **changes),
            variables={"id": task_id},
        )

    async def toggle_task_status(self, task: Task) -> Task:
        """Flip a task between completed and pending."""
        new_status: TaskStatus = task.toggled_status()
        return await self.update_task(task.id, status=new_status)

    async def delete_task(self, task_id: int) -> None:
        await self.cache.mutate(
            "delete_task",
            lambda: tasks.delete_task(self.client, task_id),
            variables={"id": task_id},
        )

    async def create_invitation(
        self,
        recipient_phone: str,
        recipient_name: str | None = None,
        recipient_email: str | None = None,
    ) -> Invitation:
        return await self.cache.mutate(
            "create_invitation",
            lambda: contacts.send_invitation(self.client, recipient_phone, recipient_name, recipient_email),
        )

    async def invite_contact(self, contact: Contact) -> Invitation:
        return await self.cache.mutate(
            "create_invitation",
            lambda: contacts.invite_contact(self.client, contact),
        )

    # ------------------------------------------------------------------
    # Whole-cache helpers
    # ------------------------------------------------------------------

    def refetch_all(self) -> int:
        """Mark every cached query stale (pull-to-refresh)."""
        return self.cache.invalidate_all()

    def is_loading(self) -> bool:
        return self.cache.is_fetching()

    async def prefetch_dashboard(self) -> None:
        """Warm members, tasks and stats concurrently."""
        await asyncio.gather(
            self.cache.prefetch(make_key(TEAM_MEMBERS), lambda: team.get_team_members(self.client)),
            self.cache.prefetch(tasks_key(), lambda: tasks.get_tasks(self.client)),
            self.cache.prefetch(make_key(TEAM_STATS), lambda: team.get_team_stats(self.client)),
        )


def create_query_cache(stale_time: float, retry: int, mutation_retry: int) -> QueryCache:
    """QueryCache wired with the app's invalidation table."""
    return QueryCache(
        stale_time=stale_time,
        retry=retry,
        mutation_retry=mutation_retry,
        invalidation_rules=MUTATION_INVALIDATIONS,
    )

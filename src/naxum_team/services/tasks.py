"""Task accessors."""

from __future__ import annotations

from typing import Any

from naxum_team.errors import ValidationError
from naxum_team.http import ApiClient
from naxum_team.models import TASK_STATUSES, Task
from naxum_team.services.envelope import unwrap_list, unwrap_record

# snake_case update fields -> API field names
_UPDATE_FIELDS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "assigned_to": "assignedTo",
    "due_date": "dueDate",
}


def build_task_filters(assigned_to: int | None = None, status: str | None = None) -> dict[str, Any]:
    """Query parameters for GET /tasks. Empty filters are omitted."""
    params: dict[str, Any] = {}
    if assigned_to:
        params["assignedTo"] = str(assigned_to)
    if status:
        params["status"] = status
    return params


async def get_tasks(
    client: ApiClient,
    assigned_to: int | None = None,
    status: str | None = None,
) -> list[Task]:
    params = build_task_filters(assigned_to, status)
    body = await client.get("/tasks", params=params or None)
    return unwrap_list(body, Task.from_dict)


async def create_task(
    client: ApiClient,
    title: str,
    assigned_to: int | None,
    description: str | None = None,
    due_date: str | None = None,
) -> Task:
    """
    Create a task for a team member.

    Raises:
        ValidationError: If title or assignee is missing (no request is sent)
    """
    if not title or not title.strip():
        raise ValidationError("Please enter a task title")
    if not assigned_to:
        raise ValidationError("Please select who to assign this task to")

    payload: dict[str, object] = {"title": title.strip(), "assignedTo": assigned_to}
    if description:
        payload["description"] = description
    if due_date:
        payload["dueDate"] = due_date

    body = await client.post("/tasks", json=payload)
    return unwrap_record(body, Task.from_dict)


async def update_task(client: ApiClient, task_id: int, **changes: Any) -> Task:
    """
    Update fields of a task; returns the server's authoritative record.

    Accepted fields: title, description, status, assigned_to, due_date.
    """
    unknown = set(changes) - set(_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Invalid task field(s): {', '.join(sorted(unknown))}")
    if "status" in changes and changes["status"] not in TASK_STATUSES:
        raise ValidationError(
            f"Invalid task status: {changes['status']}. Must be one of {', '.join(TASK_STATUSES)}"
        )
    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Please enter a task title")

    payload = {_UPDATE_FIELDS[key]: value for key, value in changes.items()}
    body = await client.put(f"/tasks/{task_id}", json=payload)
    return unwrap_record(body, Task.from_dict)


async def delete_task(client: ApiClient, task_id: int) -> None:
    await client.delete(f"/tasks/{task_id}")

"""Domain records returned by the API.

The API speaks camelCase JSON; these dataclasses use snake_case fields and
convert at the boundary with ``from_dict`` / ``to_dict``. Unknown keys are
ignored, missing required keys raise ``ValueError``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping


Role = Literal["leader", "member"]
TaskStatus = Literal["pending", "in_progress", "completed"]
InvitationStatus = Literal["pending", "accepted", "declined"]
ActivityType = Literal["member_joined", "task_completed", "task_assigned"]

TASK_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")
ROLES: tuple[str, ...] = ("leader", "member")


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValueError(f"Missing required field: {key}")
    return data[key]


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    return str(value) if value not in (None, "") else None


def _optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    return int(value) if value is not None else None


def _check_choice(value: str, choices: tuple[str, ...], field_name: str) -> str:
    if value not in choices:
        raise ValueError(f"Invalid {field_name}: {value!r}. Must be one of {', '.join(choices)}")
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from the API (accepts a trailing Z)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class User:
    """Identity record of the logged-in account."""
    id: int
    email: str
    name: str
    role: Role
    created_at: str
    phone: str | None = None
    invited_by: int | None = None

    @property
    def is_leader(self) -> bool:
        return self.role == "leader"

    def to_dict(self) -> dict[str, object]:
        """Serialize to the API's JSON shape."""
        data: dict[str, object] = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "createdAt": self.created_at,
        }
        if self.phone is not None:
            data["phone"] = self.phone
        if self.invited_by is not None:
            data["invitedBy"] = self.invited_by
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        """Deserialize from the API's JSON shape."""
        return cls(
            id=int(_require(data, "id")),
            email=str(_require(data, "email")),
            name=str(_require(data, "name")),
            role=_check_choice(str(_require(data, "role")), ROLES, "role"),  # type: ignore[arg-type]
            created_at=str(data.get("createdAt", "")),
            phone=_optional_str(data, "phone"),
            invited_by=_optional_int(data, "invitedBy"),
        )


@dataclass(frozen=True)
class Task:
    """Task assigned by a leader to a team member."""
    id: int
    title: str
    assigned_by: int
    assigned_to: int
    status: TaskStatus
    created_at: str
    updated_at: str
    description: str | None = None
    assigned_by_name: str | None = None
    assigned_to_name: str | None = None
    due_date: str | None = None
    completed_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def is_overdue(self, now: datetime | None = None) -> bool:
        """True when the due date has passed and the task is not completed."""
        if self.due_date is None or self.is_completed:
            return False
        now = now or datetime.now(timezone.utc)
        return parse_timestamp(self.due_date) < now

    def toggled_status(self) -> TaskStatus:
        """Status after tapping the checkbox: completed goes back to pending."""
        return "pending" if self.is_completed else "completed"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        return cls(
            id=int(_require(data, "id")),
            title=str(_require(data, "title")),
            assigned_by=int(_require(data, "assignedBy")),
            assigned_to=int(_require(data, "assignedTo")),
            status=_check_choice(str(_require(data, "status")), TASK_STATUSES, "status"),  # type: ignore[arg-type]
            created_at=str(data.get("createdAt", "")),
            updated_at=str(data.get("updatedAt", "")),
            description=_optional_str(data, "description"),
            assigned_by_name=_optional_str(data, "assignedByName"),
            assigned_to_name=_optional_str(data, "assignedToName"),
            due_date=_optional_str(data, "dueDate"),
            completed_at=_optional_str(data, "completedAt"),
        )


@dataclass(frozen=True)
class TeamMember:
    id: int
    email: str
    name: str
    role: str
    join_date: str
    tasks_completed: int = 0
    tasks_total: int = 0
    phone: str | None = None

    @property
    def completion_rate(self) -> float:
        """Completed share of assigned tasks, 0.0 when nothing is assigned."""
        if self.tasks_total <= 0:
            return 0.0
        return self.tasks_completed / self.tasks_total

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeamMember":
        return cls(
            id=int(_require(data, "id")),
            email=str(_require(data, "email")),
            name=str(_require(data, "name")),
            role=str(data.get("role", "member")),
            join_date=str(data.get("joinDate", "")),
            tasks_completed=int(data.get("tasksCompleted", 0) or 0),
            tasks_total=int(data.get("tasksTotal", 0) or 0),
            phone=_optional_str(data, "phone"),
        )


@dataclass(frozen=True)
class Activity:
    id: int
    type: ActivityType
    user_id: int
    user_name: str
    description: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Activity":
        return cls(
            id=int(_require(data, "id")),
            type=str(_require(data, "type")),  # type: ignore[arg-type]
            user_id=int(_require(data, "userId")),
            user_name=str(data.get("userName", "")),
            description=str(data.get("description", "")),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass(frozen=True)
class TeamStats:
    """Dashboard aggregate over the team's members and tasks."""
    total_members: int = 0
    active_members: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: float = 0.0
    recent_activity: tuple[Activity, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeamStats":
        return cls(
            total_members=int(data.get("totalMembers", 0) or 0),
            active_members=int(data.get("activeMembers", 0) or 0),
            total_tasks=int(data.get("totalTasks", 0) or 0),
            completed_tasks=int(data.get("completedTasks", 0) or 0),
            completion_rate=float(data.get("completionRate", 0) or 0),
            recent_activity=tuple(Activity.from_dict(a) for a in data.get("recentActivity") or []),
        )


@dataclass(frozen=True)
class Invitation:
    id: int
    recipient_phone: str
    status: InvitationStatus
    invite_link: str
    sent_at: str
    recipient_email: str | None = None
    recipient_name: str | None = None
    responded_at: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Invitation":
        return cls(
            id=int(_require(data, "id")),
            recipient_phone=str(_require(data, "recipientPhone")),
            status=str(data.get("status", "pending")),  # type: ignore[arg-type]
            invite_link=str(data.get("inviteLink", "")),
            sent_at=str(data.get("sentAt", "")),
            recipient_email=_optional_str(data, "recipientEmail"),
            recipient_name=_optional_str(data, "recipientName"),
            responded_at=_optional_str(data, "respondedAt"),
        )


@dataclass(frozen=True)
class Contact:
    """Address-book entry supplied by the caller (never fetched from the API)."""
    id: str
    name: str = "Unknown"
    phone_numbers: tuple[str, ...] = field(default_factory=tuple)
    emails: tuple[str, ...] = field(default_factory=tuple)

    @property
    def primary_phone(self) -> str | None:
        return self.phone_numbers[0] if self.phone_numbers else None

    @property
    def primary_email(self) -> str | None:
        return self.emails[0] if self.emails else None

"""naxum-team command-line front end."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from naxum_team.app import AppContext, open_app
from naxum_team.config import ClientConfig, load_config
from naxum_team.errors import NaxumError, ValidationError, error_message
from naxum_team.logging_setup import setup_logging
from naxum_team.models import TASK_STATUSES, Task, TeamMember
from naxum_team.services.contacts import build_invitation_message, parse_invite_code

T = TypeVar("T")

console = Console()

app = typer.Typer(
    name="naxum-team",
    help="Team and task management from the terminal.",
    no_args_is_help=True,
)
tasks_app = typer.Typer(name="tasks", help="List, create and update tasks", no_args_is_help=True)
team_app = typer.Typer(name="team", help="Team dashboard", no_args_is_help=True)
app.add_typer(tasks_app)
app.add_typer(team_app)


@app.callback()
def main(
    ctx: typer.Context,
    api_url: Optional[str] = typer.Option(None, "--api-url", help="API base URL (default: $NAXUM_API_URL)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure the client for every sub-command."""
    setup_logging(verbose)
    ctx.obj = {"config": load_config().with_overrides(api_url=api_url.rstrip("/") if api_url else None)}


def _run(
    ctx: typer.Context,
    action: Callable[[AppContext], Awaitable[T]],
    *,
    require_auth: bool = True,
) -> T:
    """Open the client context, run one action and map failures to exit code 1."""
    config: ClientConfig = ctx.obj["config"]

    async def runner() -> T:
        async with open_app(config) as client_app:
            if require_auth and not client_app.session.session.is_authenticated:
                raise ValidationError("Not logged in. Run: naxum-team login")
            return await action(client_app)

    try:
        return asyncio.run(runner())
    except NaxumError as e:
        console.print(f"[red]❌ {error_message(e)}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Session Commands
# ============================================================================


@app.command("login")
def login_cmd(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Account password"),
) -> None:
    """Log in and remember the session."""

    async def action(client_app: AppContext):
        await client_app.session.login(email, password)
        return client_app.session.session.user

    user = _run(ctx, action, require_auth=False)
    console.print(f"✅ Logged in as [bold]{user.name}[/bold] ({user.role})")


@app.command("register")
def register_cmd(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", prompt=True),
    name: str = typer.Option(..., "--name", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
    phone: Optional[str] = typer.Option(None, "--phone"),
    invite: Optional[str] = typer.Option(
        None, "--invite", help="Invite code or teamapp://register?inviteCode=... link"
    ),
) -> None:
    """Create an account, optionally joining an inviter's team."""
    invite_code = (parse_invite_code(invite) or invite) if invite else None

    async def action(client_app: AppContext):
        await client_app.session.register(email, password, name, phone, invite_code)
        return client_app.session.session.user

    user = _run(ctx, action, require_auth=False)
    console.print(f"✅ Welcome, [bold]{user.name}[/bold]!")


@app.command("logout")
def logout_cmd(ctx: typer.Context) -> None:
    """Forget the stored session."""

    async def action(client_app: AppContext):
        await client_app.session.logout()

    _run(ctx, action, require_auth=False)
    console.print("✅ Logged out")


@app.command("whoami")
def whoami_cmd(ctx: typer.Context) -> None:
    """Show the logged-in user as the server sees it."""

    async def action(client_app: AppContext):
        return await client_app.session.refresh_user()

    user = _run(ctx, action)
    details = [
        f"[cyan]Name:[/cyan] {user.name}",
        f"[cyan]Email:[/cyan] {user.email}",
        f"[cyan]Role:[/cyan] {user.role}",
    ]
    if user.phone:
        details.append(f"[cyan]Phone:[/cyan] {user.phone}")
    console.print(Panel("\n".join(details), title=f"User #{user.id}"))


# ============================================================================
# Task Commands
# ============================================================================


def _print_tasks(tasks: list[Task]) -> None:
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title="Tasks", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title", style="green")
    table.add_column("Status")
    table.add_column("Assigned To")
    table.add_column("Due", style="dim")

    for task in tasks:
        due = task.due_date or ""
        if task.is_overdue():
            due = f"[red]{due} (overdue)[/red]"
        mark = "✔ " if task.is_completed else ""
        table.add_row(
            str(task.id),
            f"{mark}{task.title}",
            task.status,
            task.assigned_to_name or str(task.assigned_to),
            due,
        )
    console.print(table)


@tasks_app.command("list")
def tasks_list_cmd(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", help=f"One of: {', '.join(TASK_STATUSES)}"),
    assigned_to: Optional[int] = typer.Option(None, "--assigned-to", help="Member ID"),
) -> None:
    """List tasks, optionally filtered."""
    if status and status not in TASK_STATUSES:
        console.print(f"[red]❌ Invalid status: {status}. Must be one of {', '.join(TASK_STATUSES)}[/red]")
        raise typer.Exit(1)

    tasks = _run(ctx, lambda client_app: client_app.queries.tasks(assigned_to=assigned_to, status=status))
    _print_tasks(tasks)


@tasks_app.command("create")
def tasks_create_cmd(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    assign_to: int = typer.Option(..., "--assign-to", help="Member ID"),
    description: Optional[str] = typer.Option(None, "--description"),
    due: Optional[str] = typer.Option(None, "--due", help="Due date (ISO 8601)"),
) -> None:
    """Create a task for a team member."""
    task = _run(ctx, lambda client_app: client_app.queries.create_task(title, assign_to, description, due))
    console.print(f"✅ Task created: [bold]#{task.id}[/bold] {task.title}")


@tasks_app.command("toggle")
def tasks_toggle_cmd(ctx: typer.Context, task_id: int = typer.Argument(..., help="Task ID")) -> None:
    """Toggle a task between completed and pending."""

    async def action(client_app: AppContext):
        task = await client_app.queries.task(task_id)
        return await client_app.queries.toggle_task_status(task)

    task = _run(ctx, action)
    console.print(f"✅ Task #{task.id} is now [bold]{task.status}[/bold]")


@tasks_app.command("status")
def tasks_status_cmd(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    status: str = typer.Argument(..., help=f"One of: {', '.join(TASK_STATUSES)}"),
) -> None:
    """Set a task's status."""
    task = _run(ctx, lambda client_app: client_app.queries.update_task(task_id, status=status))
    console.print(f"✅ Task #{task.id} is now [bold]{task.status}[/bold]")


@tasks_app.command("delete")
def tasks_delete_cmd(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a task."""
    if not yes and not typer.confirm(f"Delete task #{task_id}?"):
        raise typer.Exit(0)

    _run(ctx, lambda client_app: client_app.queries.delete_task(task_id))
    console.print(f"✅ Task #{task_id} deleted")


# ============================================================================
# Team Commands
# ============================================================================


def _print_members(title: str, members: list[TeamMember]) -> None:
    if not members:
        console.print("[yellow]No team members yet[/yellow]")
        return

    table = Table(title=title, show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Role", style="magenta")
    table.add_column("Tasks", justify="right")

    for member in members:
        table.add_row(
            str(member.id),
            member.name,
            member.email,
            member.role,
            f"{member.tasks_completed}/{member.tasks_total}",
        )
    console.print(table)


@team_app.command("members")
def team_members_cmd(ctx: typer.Context) -> None:
    """List all team members."""
    _print_members("Team Members", _run(ctx, lambda client_app: client_app.queries.team_members()))


@team_app.command("mine")
def team_mine_cmd(ctx: typer.Context) -> None:
    """List the members you invited."""
    _print_members("My Team", _run(ctx, lambda client_app: client_app.queries.my_team()))


@team_app.command("leader")
def team_leader_cmd(ctx: typer.Context) -> None:
    """Show your team leader."""
    leader = _run(ctx, lambda client_app: client_app.queries.team_leader())
    if leader is None:
        console.print("[dim]You have no team leader[/dim]")
        return
    console.print(f"[cyan]Leader:[/cyan] {leader.name} <{leader.email}>")


@team_app.command("stats")
def team_stats_cmd(ctx: typer.Context) -> None:
    """Show the team dashboard."""
    stats = _run(ctx, lambda client_app: client_app.queries.team_stats())

    lines = [
        f"[cyan]Members:[/cyan] {stats.active_members} active / {stats.total_members} total",
        f"[cyan]Tasks:[/cyan] {stats.completed_tasks} completed / {stats.total_tasks} total",
        f"[cyan]Completion rate:[/cyan] {stats.completion_rate:.0f}%",
    ]
    if stats.recent_activity:
        lines.extend(["", "[cyan]Recent Activity:[/cyan]"])
        for activity in stats.recent_activity:
            lines.append(f"  • {activity.description} [dim]({activity.timestamp})[/dim]")
    console.print(Panel("\n".join(lines), title="Team Dashboard"))


# ============================================================================
# Invitation Commands
# ============================================================================


@app.command("invite")
def invite_cmd(
    ctx: typer.Context,
    phone: str = typer.Argument(..., help="Recipient phone number"),
    name: Optional[str] = typer.Option(None, "--name"),
    email: Optional[str] = typer.Option(None, "--email"),
) -> None:
    """Invite someone to your team and print the SMS text to send."""
    invitation = _run(ctx, lambda client_app: client_app.queries.create_invitation(phone, name, email))
    console.print(f"✅ Invitation sent to [bold]{invitation.recipient_name or invitation.recipient_phone}[/bold]")
    console.print(Panel(build_invitation_message(invitation), title="SMS message"))


@app.command("invitations")
def invitations_cmd(ctx: typer.Context) -> None:
    """List sent invitations."""
    invitations = _run(ctx, lambda client_app: client_app.queries.invitations())
    if not invitations:
        console.print("[yellow]No invitations sent yet[/yellow]")
        return

    table = Table(title="Invitations", show_header=True)
    table.add_column("Recipient", style="green")
    table.add_column("Phone")
    table.add_column("Status", style="magenta")
    table.add_column("Sent", style="dim")
    for invitation in invitations:
        table.add_row(
            invitation.recipient_name or "",
            invitation.recipient_phone,
            invitation.status,
            invitation.sent_at,
        )
    console.print(table)


if __name__ == "__main__":
    app()

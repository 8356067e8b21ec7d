"""Tests for the naxum-team command-line front end."""

import asyncio
import json

import httpx
import pytest
import respx
from typer.testing import CliRunner

from naxum_team.cli import app

runner = CliRunner()

API = ["--api-url", "https://api.example.com/"]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from replacing the root logging handlers during tests."""
    monkeypatch.setattr("naxum_team.cli.setup_logging", lambda verbose: None)


@pytest.fixture
def logged_in(store, leader):
    asyncio.run(store.save("tok-abc", leader))
    return leader


@pytest.mark.respx(base_url="https://api.example.com")
def test_login(respx_mock: respx.MockRouter, store, leader_payload):
    respx_mock.post("/auth/login").mock(
        return_value=httpx.Response(200, json={"data": {"user": leader_payload, "token": "tok-abc"}})
    )

    result = runner.invoke(app, [*API, "login", "--email", "leader@naxum.com", "--password", "password123"])

    assert result.exit_code == 0, result.output
    assert "Logged in as Team Leader" in result.stdout
    assert json.loads(store.path.read_text())["token"] == "tok-abc"


@pytest.mark.respx(base_url="https://api.example.com")
def test_login_failure_exits_with_message(respx_mock: respx.MockRouter, store):
    respx_mock.post("/auth/login").mock(
        return_value=httpx.Response(401, json={"message": "Invalid email or password"})
    )

    result = runner.invoke(app, [*API, "login", "--email", "leader@naxum.com", "--password", "nope"])

    assert result.exit_code == 1
    assert "❌ Invalid email or password" in result.stdout
    assert not store.path.exists()


@pytest.mark.respx(base_url="https://api.example.com")
def test_register_accepts_invite_link(respx_mock: respx.MockRouter, leader_payload):
    member = dict(leader_payload, id=2, name="New Member", role="member", invitedBy=1)
    route = respx_mock.post("/auth/register").mock(
        return_value=httpx.Response(201, json={"data": {"user": member, "token": "tok-new"}})
    )

    result = runner.invoke(
        app,
        [
            *API,
            "register",
            "--email", "m@naxum.com",
            "--name", "New Member",
            "--password", "password123",
            "--invite", "teamapp://register?inviteCode=cf1f7f3f",
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(route.calls.last.request.content)["inviteCode"] == "cf1f7f3f"
    assert "Welcome, New Member!" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_commands_require_login(respx_mock: respx.MockRouter):
    result = runner.invoke(app, [*API, "tasks", "list"])

    assert result.exit_code == 1
    assert "Not logged in" in result.stdout
    assert not respx_mock.calls


@pytest.mark.respx(base_url="https://api.example.com")
def test_tasks_list(respx_mock: respx.MockRouter, logged_in, make_task):
    route = respx_mock.get("/tasks", params={"status": "pending"}).mock(
        return_value=httpx.Response(200, json={"data": [make_task(1, title="Call leads")]})
    )

    result = runner.invoke(app, [*API, "tasks", "list", "--status", "pending"])

    assert result.exit_code == 0, result.output
    assert "Call leads" in result.stdout
    assert route.calls.last.request.headers["Authorization"] == "Bearer tok-abc"


@pytest.mark.respx(base_url="https://api.example.com")
def test_tasks_list_rejects_unknown_status(respx_mock: respx.MockRouter, logged_in):
    result = runner.invoke(app, [*API, "tasks", "list", "--status", "archived"])

    assert result.exit_code == 1
    assert "Invalid status" in result.stdout
    assert not respx_mock.calls


@pytest.mark.respx(base_url="https://api.example.com")
def test_tasks_create(respx_mock: respx.MockRouter, logged_in, make_task):
    route = respx_mock.post("/tasks").mock(
        return_value=httpx.Response(201, json={"data": make_task(9, title="Follow up")})
    )

    result = runner.invoke(app, [*API, "tasks", "create", "Follow up", "--assign-to", "2"])

    assert result.exit_code == 0, result.output
    assert json.loads(route.calls.last.request.content) == {"title": "Follow up", "assignedTo": 2}
    assert "Task created: #9 Follow up" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_tasks_toggle(respx_mock: respx.MockRouter, logged_in, make_task):
    respx_mock.get("/tasks").mock(return_value=httpx.Response(200, json={"data": [make_task(4)]}))
    route = respx_mock.put("/tasks/4").mock(
        return_value=httpx.Response(200, json={"data": make_task(4, status="completed")})
    )

    result = runner.invoke(app, [*API, "tasks", "toggle", "4"])

    assert result.exit_code == 0, result.output
    assert json.loads(route.calls.last.request.content) == {"status": "completed"}
    assert "Task #4 is now completed" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_tasks_delete_with_yes(respx_mock: respx.MockRouter, logged_in):
    route = respx_mock.delete("/tasks/4").mock(return_value=httpx.Response(200, json={"data": None}))

    result = runner.invoke(app, [*API, "tasks", "delete", "4", "--yes"])

    assert result.exit_code == 0, result.output
    assert route.called
    assert "Task #4 deleted" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_expired_token_is_reported(respx_mock: respx.MockRouter, logged_in, store):
    respx_mock.get("/team/stats").mock(return_value=httpx.Response(401))

    result = runner.invoke(app, [*API, "team", "stats"])

    assert result.exit_code == 1
    assert "❌" in result.stdout
    assert not store.path.exists()


@pytest.mark.respx(base_url="https://api.example.com")
def test_malformed_payload_is_reported(respx_mock: respx.MockRouter, logged_in):
    route = respx_mock.get("/team/members").mock(return_value=httpx.Response(200, json={"data": [{"id": 1}]}))

    result = runner.invoke(app, [*API, "team", "members"])

    assert result.exit_code == 1
    assert "❌ Malformed API response" in result.stdout
    assert route.call_count == 1


@pytest.mark.respx(base_url="https://api.example.com")
def test_team_leader_absent(respx_mock: respx.MockRouter, logged_in):
    respx_mock.get("/team/leader").mock(return_value=httpx.Response(200, json={"data": None}))

    result = runner.invoke(app, [*API, "team", "leader"])

    assert result.exit_code == 0, result.output
    assert "You have no team leader" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_invite_prints_sms_text(respx_mock: respx.MockRouter, logged_in):
    invitation = {
        "id": 5,
        "recipientPhone": "+15550100",
        "recipientName": "Ana",
        "status": "pending",
        "inviteLink": "teamapp://register?inviteCode=abc",
        "sentAt": "2024-01-01T00:00:00Z",
    }
    respx_mock.post("/invitations").mock(return_value=httpx.Response(201, json={"data": invitation}))

    result = runner.invoke(app, [*API, "invite", "+15550100", "--name", "Ana"])

    assert result.exit_code == 0, result.output
    assert "Invitation sent to Ana" in result.stdout
    assert "Join my sales team!" in result.stdout


@pytest.mark.respx(base_url="https://api.example.com")
def test_logout(respx_mock: respx.MockRouter, logged_in, store):
    respx_mock.post("/auth/logout").mock(return_value=httpx.Response(200, json={"data": None}))

    result = runner.invoke(app, [*API, "logout"])

    assert result.exit_code == 0, result.output
    assert "Logged out" in result.stdout
    assert not store.path.exists()


@pytest.mark.respx(base_url="https://api.example.com")
def test_api_url_from_environment(respx_mock: respx.MockRouter, monkeypatch, logged_in):
    monkeypatch.setenv("NAXUM_API_URL", "https://api.example.com")
    respx_mock.get("/team/members").mock(return_value=httpx.Response(200, json={"data": []}))

    result = runner.invoke(app, ["team", "members"])

    assert result.exit_code == 0, result.output
    assert "No team members yet" in result.stdout

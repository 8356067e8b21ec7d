"""Shared fixtures for client core tests."""

import pytest
import pytest_asyncio

from naxum_team.config import ClientConfig
from naxum_team.credentials import CredentialStore
from naxum_team.http import ApiClient
from naxum_team.models import User

API_URL = "https://api.example.com"


@pytest.fixture(autouse=True)
def patch_home(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.naxum-team and API settings."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("NAXUM_HOME", str(tmp_path / ".naxum-team"))
    monkeypatch.delenv("NAXUM_API_URL", raising=False)
    monkeypatch.delenv("API_URL", raising=False)
    monkeypatch.delenv("NAXUM_TIMEOUT", raising=False)
    return tmp_path


@pytest.fixture
def config(tmp_path):
    return ClientConfig(api_url=API_URL, credentials_path=tmp_path / ".naxum-team" / "credentials.json")


@pytest.fixture
def store(config):
    return CredentialStore(config.credentials_path)


@pytest_asyncio.fixture
async def client(config, store):
    async with ApiClient(config, store) as api_client:
        yield api_client


@pytest.fixture
def leader_payload():
    """User record as the API sends it."""
    return {
        "id": 1,
        "email": "leader@naxum.com",
        "name": "Team Leader",
        "role": "leader",
        "createdAt": "2024-01-01T00:00:00.000Z",
    }


@pytest.fixture
def leader(leader_payload):
    return User.from_dict(leader_payload)


def task_payload(task_id=1, status="pending", assigned_to=2, **extra):
    """Task record as the API sends it."""
    data = {
        "id": task_id,
        "title": f"Task {task_id}",
        "assignedBy": 1,
        "assignedTo": assigned_to,
        "status": status,
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }
    data.update(extra)
    return data


@pytest.fixture
def make_task():
    return task_payload

"""Tests for environment-driven configuration."""

from pathlib import Path

from naxum_team.config import DEFAULT_API_URL, ClientConfig, get_home_dir, load_config


def test_load_config_defaults_to_local_server():
    """Without environment overrides the local development API is used."""
    config = load_config()
    assert config.api_url == DEFAULT_API_URL
    assert config.timeout == 10.0
    assert config.stale_time == 300.0
    assert config.query_retry == 1
    assert config.mutation_retry == 1


def test_load_config_prefers_naxum_api_url(monkeypatch):
    monkeypatch.setenv("API_URL", "https://generic.example.com/api")
    monkeypatch.setenv("NAXUM_API_URL", "https://naxum.example.com/api/")

    assert load_config().api_url == "https://naxum.example.com/api"


def test_load_config_falls_back_to_api_url(monkeypatch):
    monkeypatch.setenv("API_URL", "https://generic.example.com/api")

    assert load_config().api_url == "https://generic.example.com/api"


def test_home_dir_override(monkeypatch, tmp_path):
    monkeypatch.setenv("NAXUM_HOME", str(tmp_path / "custom"))

    assert get_home_dir() == tmp_path / "custom"
    assert load_config().credentials_path == tmp_path / "custom" / "credentials.json"


def test_home_dir_default(monkeypatch, tmp_path):
    monkeypatch.delenv("NAXUM_HOME")

    assert get_home_dir() == Path.home() / ".naxum-team"


def test_with_overrides_ignores_none():
    config = ClientConfig(api_url="https://a.example.com")

    updated = config.with_overrides(api_url=None, timeout=3.0)

    assert updated.api_url == "https://a.example.com"
    assert updated.timeout == 3.0
    assert config.timeout == 10.0

"""Tests for settings and environment configuration."""
from __future__ import annotations

from pathlib import Path

import pytest

from eclipse_roster.config import RuntimeConfig, Settings, SettingsLoader, get_settings


def test_bundled_settings():
    settings = SettingsLoader().load()

    assert settings.roster_title == "🌘 Eclipse Official Roster"
    assert settings.default_categories == ["Council", "Staff", "Moderador", "Eclipse", "Trial"]
    assert settings.default_style == "estrella"
    assert settings.save_delay_seconds == pytest.approx(0.5)
    assert set(settings.recipes) == {"pass", "purge", "eclp"}
    assert settings.recipes["purge"].reset_nickname
    assert settings.recipes["pass"].add == (settings.roles["eclipse"], settings.roles["trial"])


def test_loader_caches(tmp_path):
    loader = SettingsLoader()
    assert loader.load() is loader.load()
    assert loader.load(force=True) is not None


def test_settings_override_from_env(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "roster:\n  title: Test Roster\n  default_categories: [A, B]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ECLIPSE_ROSTER_SETTINGS", str(path))

    settings = get_settings()

    assert settings.roster_title == "Test Roster"
    assert settings.default_categories == ["A", "B"]
    assert settings.recipes == {}


def test_recipe_with_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        Settings.from_dict({"roles": {"guest": 1}, "recipes": {"pass": {"add": ["ghost"]}}})


def test_runtime_config_from_env(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    monkeypatch.setenv("GUILD_ID", "123")
    monkeypatch.setenv("ROSTER_CHANNEL_ID", "456")
    monkeypatch.setenv("ROSTER_STATE_FILE", "/tmp/roster.json")
    monkeypatch.setenv("PORT", "9000")

    config = RuntimeConfig.from_env()

    assert config.token == "abc"
    assert config.guild_id == 123
    assert config.roster_channel_id == 456
    assert config.state_file == Path("/tmp/roster.json")
    assert config.health_port == 9000


def test_runtime_config_defaults(monkeypatch, caplog):
    for var in ("DISCORD_TOKEN", "GUILD_ID", "ROSTER_CHANNEL_ID", "ROSTER_STATE_FILE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("PORT", "not-a-port")

    config = RuntimeConfig.from_env()

    assert config.token is None
    assert config.roster_channel_id is None
    assert config.state_file == Path("state.json")
    assert config.health_port == 8080
    assert "Invalid integer" in caplog.text


def test_port_zero_disables_health(monkeypatch):
    monkeypatch.setenv("PORT", "0")
    assert RuntimeConfig.from_env().health_port == 0

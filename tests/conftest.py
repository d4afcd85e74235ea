"""Shared fixtures for roster tests."""
from __future__ import annotations

from dataclasses import replace

import pytest

from eclipse_roster.config import SettingsLoader
from eclipse_roster.telemetry import reset_telemetry


@pytest.fixture(autouse=True)
def isolated_telemetry(tmp_path, monkeypatch):
    """Keep telemetry databases out of the working directory."""
    monkeypatch.setenv("ECLIPSE_ROSTER_TELEMETRY_DB", str(tmp_path / "telemetry.db"))
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def settings():
    return replace(SettingsLoader().load(), save_delay_seconds=0.05)

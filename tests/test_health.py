"""Tests for the HTTP health responder."""
from __future__ import annotations

from fastapi.testclient import TestClient

from eclipse_roster.health import create_app
from eclipse_roster.service import RosterService


def test_health_reports_roster_counts(settings):
    service = RosterService(None, settings)
    service.init({"Staff": ["Bob", "Ann"], "Trial": []})
    client = TestClient(create_app(service))

    for path in ("/", "/health"):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "categories": 2,
            "members": 2,
            "save_pending": False,
        }

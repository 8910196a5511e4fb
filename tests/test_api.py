"""
Tests for the read API over reported rows.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from netrate.api import app
from netrate.models import InterfaceStat


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seeded(db):
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = [
        ("en0", 0, 0, 0.0, 0.0, 0),
        ("en1", 0, 0, 0.0, 0.0, 0),
        ("en0", 2000, 100, 999.5, 50.0, 2),
        ("en1", 10, 20, 5.0, 10.0, 2),
        ("en0", 5000, 300, 1500.0, 100.0, 4),
    ]
    for name, tin, tout, rin, rout, offset in rows:
        db.add(InterfaceStat(
            ts=start + timedelta(seconds=offset),
            if_name=name,
            total_in_bytes=tin,
            total_out_bytes=tout,
            in_bytes_per_sec=rin,
            out_bytes_per_sec=rout,
        ))
    db.commit()
    return db


class TestApi:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_latest_empty(self, client, db):
        response = client.get("/interfaces/latest")
        assert response.status_code == 200
        assert response.json() == []

    def test_latest(self, client, seeded):
        body = client.get("/interfaces/latest").json()

        assert [row["if_name"] for row in body] == ["en0", "en1"]
        assert body[0]["total_in_bytes"] == 5000
        assert body[1]["out_bytes_per_sec"] == 10.0

    def test_summary(self, client, seeded):
        body = client.get("/interfaces/summary").json()
        en0 = body[0]

        assert en0["if_name"] == "en0"
        assert en0["sample_count"] == 3
        assert en0["total_in_bytes"] == 5000
        assert en0["peak_in_bytes_per_sec"] == 1500.0
        assert en0["peak_out_bytes_per_sec"] == 100.0
        assert body[1]["sample_count"] == 2

    def test_history_newest_first(self, client, seeded):
        body = client.get("/interfaces/en0/history", params={"limit": 2}).json()
        assert [row["total_in_bytes"] for row in body] == [5000, 2000]

    def test_history_unknown_interface(self, client, seeded):
        response = client.get("/interfaces/utun9/history")
        assert response.status_code == 404

    def test_history_rejects_bad_limit(self, client, seeded):
        response = client.get("/interfaces/en0/history", params={"limit": 0})
        assert response.status_code == 422

"""Tests for the liveness endpoints."""

from fastapi.testclient import TestClient


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root_banner(client: TestClient):
    data = client.get("/").json()
    assert data["name"] == "EduGame API"
    assert data["docs"] == "/docs"

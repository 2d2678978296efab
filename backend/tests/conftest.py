"""Shared pytest fixtures for backend tests."""

import os
import uuid

# Settings are read at import time; keep tests off Postgres / Redis / SMTP.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LEADERBOARD_CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_CONTACT_RPM"] = "0"
os.environ["NOTIFIER_BACKEND"] = "log"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["SMTP_HOST"] = ""

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from edugame.api.deps import get_notifier
from edugame.db import models  # noqa: F401
from edugame.db.models import RoleEnum, User
from edugame.db.session import Base, get_db
from edugame.main import app
from edugame.services.notifier import RecordingNotifier


# In-memory SQLite shared across connections via StaticPool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def mock_celery_tasks():
    """Mock the contact email task so no broker or SMTP server is touched."""
    mock_task = MagicMock(return_value={"success": True})
    mock_task.delay = MagicMock(return_value=MagicMock(id="fake-task-id"))
    with patch("edugame.api.contact.send_contact_email", mock_task):
        yield mock_task


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session for each test (routes commit)."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db: Session, notifier: RecordingNotifier):
    """FastAPI test client with overridden DB and notifier dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def register(client: TestClient, db: Session):
    """Factory: register a user and return ``(auth_headers, user_json)``.

    Admins cannot self-register, so an "admin" signs up as a student and is
    promoted in the database; roles are read from the DB on every request.
    """
    counter = {"n": 0}

    def _register(role: str = "student", full_name: str | None = None) -> tuple[dict, dict]:
        counter["n"] += 1
        n = counter["n"]
        response = client.post(
            "/api/users/register",
            json={
                "email": f"{role}{n}@edugame.io",
                "password": "secret123",
                "full_name": full_name or f"{role.title()} {n}",
                "role": "student" if role == "admin" else role,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        if role == "admin":
            user = db.get(User, uuid.UUID(data["user"]["id"]))
            user.role = RoleEnum.ADMIN
            db.commit()
            data["user"]["role"] = "admin"
        return {"Authorization": f"Bearer {data['access_token']}"}, data["user"]

    return _register


def _quiz_payload(category: str = "math", difficulty: str = "beginner", answers=(0, 1, 2, 3), **overrides) -> dict:
    """Request body for POST /api/quizzes with one question per correct answer."""
    body = {
        "title": f"{category.title()} {difficulty} quiz",
        "description": "Sample quiz",
        "category": category,
        "difficulty": difficulty,
        "time_limit_minutes": 10,
        "questions": [
            {
                "text": f"Question {i + 1}",
                "options": ["A", "B", "C", "D"],
                "correct_answer": correct,
                "explanation": f"Option {correct} is right",
                "points": 10,
            }
            for i, correct in enumerate(answers)
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture(scope="function")
def quiz_payload():
    return _quiz_payload


@pytest.fixture(scope="function")
def make_quiz(client: TestClient, register):
    """Factory: create a quiz as a teacher and return its JSON."""
    headers, _ = register("teacher")

    def _make(**kwargs) -> dict:
        response = client.post("/api/quizzes/", json=_quiz_payload(**kwargs), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make

"""Tests for the achievement catalogue and per-user achievement routes."""

import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from edugame.db.models import Achievement, UserAchievement


def _create(client: TestClient, headers: dict, name: str, criterion: dict, **extra):
    return client.post(
        "/api/achievements/",
        json={"name": name, "criterion": criterion, **extra},
        headers=headers,
    )


def _take_quiz(client: TestClient, quiz: dict, headers: dict):
    body = {"answers": [{"question_id": str(i), "selected_answer": 0} for i in range(len(quiz["questions"]))]}
    response = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_admin_creates_achievement(client: TestClient, register):
    admin, _ = register("admin")
    response = _create(
        client, admin, "Science Lover",
        {"type": "category_mastery", "category": "science", "value": 5},
        reward_points=150, rarity="uncommon",
    )

    assert response.status_code == 201
    data = response.json()
    assert data["criterion"] == {"type": "category_mastery", "category": "science", "value": 5}
    assert data["rarity"] == "uncommon"
    assert [a["name"] for a in client.get("/api/achievements/").json()] == ["Science Lover"]


def test_student_cannot_create_achievement(client: TestClient, register):
    student, _ = register("student")
    response = _create(client, student, "Cheat", {"type": "quiz_count", "value": 1})
    assert response.status_code == 403


def test_unknown_criterion_type_is_rejected(client: TestClient, register):
    admin, _ = register("admin")
    response = _create(client, admin, "Mystery", {"type": "moon_phase", "value": 1})

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "INVALID_CRITERION"
    assert "quiz_count" in body["details"]["known_types"]


def test_criterion_missing_required_field_is_rejected(client: TestClient, register):
    admin, _ = register("admin")
    response = _create(client, admin, "No Category", {"type": "category_mastery", "value": 3})
    assert response.status_code == 422


def test_duplicate_name_conflicts(client: TestClient, register):
    admin, _ = register("admin")
    _create(client, admin, "First Steps", {"type": "quiz_count", "value": 1})
    response = _create(client, admin, "First Steps", {"type": "quiz_count", "value": 2})
    assert response.status_code == 409


def test_hidden_achievements_are_not_listed(client: TestClient, db: Session):
    db.add(Achievement(name="Secret", criterion={"type": "perfect_score"}, is_hidden=True))
    db.commit()
    assert client.get("/api/achievements/").json() == []


def test_my_achievements_progress_and_recent(client: TestClient, register, make_quiz):
    admin, _ = register("admin")
    _create(client, admin, "First Steps", {"type": "quiz_count", "value": 1}, reward_points=50)
    _create(client, admin, "Quiz Enthusiast", {"type": "quiz_count", "value": 10})
    quiz = make_quiz()
    student, _ = register("student")

    result = _take_quiz(client, quiz, student)
    assert [a["name"] for a in result["newly_unlocked"]] == ["First Steps"]

    mine = client.get("/api/achievements/me", headers=student).json()
    assert mine["total_unlocked"] == 1
    assert mine["total_available"] == 2
    assert [a["name"] for a in mine["unlocked"]] == ["First Steps"]
    assert [a["name"] for a in mine["locked"]] == ["Quiz Enthusiast"]

    progress = {p["name"]: p for p in client.get("/api/achievements/me/progress", headers=student).json()}
    assert progress["First Steps"]["is_unlocked"] is True
    assert progress["First Steps"]["progress_percentage"] == 100
    assert progress["Quiz Enthusiast"]["current_progress"] == 1
    assert progress["Quiz Enthusiast"]["progress_percentage"] == 10

    recent = client.get("/api/achievements/me/recent", headers=student).json()
    assert [a["name"] for a in recent] == ["First Steps"]
    assert recent[0]["earned_at"]


def test_my_achievements_requires_auth(client: TestClient):
    assert client.get("/api/achievements/me").status_code == 401


def test_earned_achievement_with_stale_criterion_still_listed(client: TestClient, db: Session, register):
    stale = Achievement(name="Old Mastery", criterion={"type": "category_mastery", "value": 2})
    db.add(stale)
    db.commit()
    student, user = register("student")
    db.add(UserAchievement(user_id=uuid.UUID(user["id"]), achievement_id=stale.id))
    db.commit()

    mine = client.get("/api/achievements/me", headers=student)
    assert mine.status_code == 200
    [earned] = mine.json()["unlocked"]
    assert earned["name"] == "Old Mastery"
    assert earned["criterion"]["type"] == "category_mastery"

    recent = client.get("/api/achievements/me/recent", headers=student)
    assert [a["name"] for a in recent.json()] == ["Old Mastery"]

    progress = client.get("/api/achievements/me/progress", headers=student).json()
    assert progress[0]["is_unlocked"] is True

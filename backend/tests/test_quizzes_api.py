"""Tests for quiz authoring, listing and the attempt flow."""

import uuid

from fastapi.testclient import TestClient
from sqlalchemy import update
from sqlalchemy.orm import Session

from edugame.db.models import (
    AchievementCategoryEnum,
    Achievement,
    Attempt,
    CategoryEnum,
    DifficultyEnum,
    Question,
    Quiz,
    RarityEnum,
    User,
)
from edugame.schemas.attempt import AnswerSubmission, AttemptSubmission
from edugame.services.notifier import ACHIEVEMENT_UNLOCKED, QUIZ_COMPLETED, RecordingNotifier
from edugame.services.submission import submit_attempt


def _seed_achievement(db: Session, name: str, criterion: dict, points: int = 0, xp: int = 0) -> Achievement:
    row = Achievement(
        name=name,
        description=name,
        icon="🏅",
        category=AchievementCategoryEnum.QUIZ,
        criterion=criterion,
        reward_points=points,
        reward_experience=xp,
        rarity=RarityEnum.COMMON,
    )
    db.add(row)
    db.commit()
    return row


def _answers(quiz: dict, picks: list[int]) -> dict:
    return {
        "answers": [
            {"question_id": q["id"], "selected_answer": pick}
            for q, pick in zip(quiz["questions"], picks)
        ],
        "time_spent": 120,
    }


# ── Authoring ─────────────────────────────────────────────────────────────────


def test_teacher_creates_quiz(client: TestClient, register, quiz_payload):
    headers, _ = register("teacher")
    response = client.post("/api/quizzes/", json=quiz_payload(), headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["total_points"] == 40
    assert data["question_count"] == 4
    assert all("correct_answer" not in q for q in data["questions"])


def test_student_cannot_create_quiz(client: TestClient, register, quiz_payload):
    headers, _ = register("student")
    response = client.post("/api/quizzes/", json=quiz_payload(), headers=headers)
    assert response.status_code == 403


def test_create_requires_auth(client: TestClient, quiz_payload):
    assert client.post("/api/quizzes/", json=quiz_payload()).status_code == 401


def test_question_needs_four_options(client: TestClient, register, quiz_payload):
    headers, _ = register("teacher")
    body = quiz_payload()
    body["questions"][0]["options"] = ["A", "B"]
    assert client.post("/api/quizzes/", json=body, headers=headers).status_code == 422


def test_list_filters_and_search(client: TestClient, make_quiz):
    make_quiz(category="math", title="Fractions warm-up")
    make_quiz(category="science", title="Cells and atoms")
    make_quiz(category="science", difficulty="advanced", title="Quantum basics")

    everything = client.get("/api/quizzes/").json()
    assert everything["pagination"]["total"] == 3

    science = client.get("/api/quizzes/", params={"category": "science"}).json()
    assert {q["title"] for q in science["quizzes"]} == {"Cells and atoms", "Quantum basics"}

    advanced = client.get("/api/quizzes/", params={"difficulty": "advanced"}).json()
    assert [q["title"] for q in advanced["quizzes"]] == ["Quantum basics"]

    found = client.get("/api/quizzes/", params={"search": "fraction"}).json()
    assert [q["title"] for q in found["quizzes"]] == ["Fractions warm-up"]


def test_list_paginates(client: TestClient, make_quiz):
    for i in range(3):
        make_quiz(title=f"Quiz {i}")
    page = client.get("/api/quizzes/", params={"limit": 2, "page": 2}).json()
    assert len(page["quizzes"]) == 1
    assert page["pagination"] == {"current": 2, "pages": 2, "total": 3}


def test_unknown_quiz_is_404(client: TestClient):
    assert client.get(f"/api/quizzes/{uuid.uuid4()}").status_code == 404


def test_author_updates_and_other_teacher_cannot(client: TestClient, register, quiz_payload):
    author, _ = register("teacher")
    other, _ = register("teacher")
    quiz = client.post("/api/quizzes/", json=quiz_payload(), headers=author).json()

    response = client.put(
        f"/api/quizzes/{quiz['id']}",
        json={"title": "Renamed", "questions": quiz_payload(answers=(1, 2))["questions"]},
        headers=author,
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["total_points"] == 20

    response = client.put(f"/api/quizzes/{quiz['id']}", json={"title": "Hijack"}, headers=other)
    assert response.status_code == 403


def test_admin_can_delete_any_quiz(client: TestClient, register, make_quiz):
    admin, _ = register("admin")
    quiz = make_quiz()

    assert client.delete(f"/api/quizzes/{quiz['id']}", headers=admin).status_code == 204
    assert client.get(f"/api/quizzes/{quiz['id']}").status_code == 404
    assert client.get("/api/quizzes/").json()["pagination"]["total"] == 0


# ── Attempts ──────────────────────────────────────────────────────────────────


def test_attempt_grades_and_updates_stats(client: TestClient, register, make_quiz, notifier):
    quiz = make_quiz(answers=(0, 1, 2, 3))
    headers, user = register("student")

    response = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=_answers(quiz, [0, 1, 2, 0]), headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["attempt"]["percentage"] == 75
    assert data["attempt"]["points_earned"] == 30
    assert data["attempt"]["performance"] == "satisfactory"
    assert data["stats"]["total_quizzes"] == 1
    assert data["stats"]["total_points"] == 30
    assert data["stats"]["experience"] == 30
    assert data["stats"]["current_streak"] == 1
    assert data["leveled_up"] is False
    assert [a["is_correct"] for a in data["answers"]] == [True, True, True, False]
    assert data["answers"][3]["correct_answer"] == 3
    assert data["answers"][3]["explanation"] == "Option 3 is right"

    [event] = notifier.of(QUIZ_COMPLETED)
    assert event["user_id"] == user["id"]
    assert event["percentage"] == 75
    assert notifier.of(ACHIEVEMENT_UNLOCKED) == []

    detail = client.get(f"/api/quizzes/{quiz['id']}").json()
    assert detail["attempt_count"] == 1
    assert detail["average_score"] == 75


def test_quiz_average_reads_committed_row(client: TestClient, db: Session, register, make_quiz):
    created = make_quiz(answers=(0, 1, 2, 3))
    _, user_json = register("student")
    quiz = db.get(Quiz, uuid.UUID(created["id"]))
    user = db.get(User, uuid.UUID(user_json["id"]))

    # another submission lands after this session loaded the quiz
    db.execute(
        update(Quiz)
        .where(Quiz.id == quiz.id)
        .values(attempt_count=3, average_score=50.0)
        .execution_options(synchronize_session=False)
    )
    assert quiz.attempt_count == 0

    submission = AttemptSubmission(
        answers=[AnswerSubmission(question_id=str(i), selected_answer=i) for i in range(4)],
        time_spent=60,
    )
    submit_attempt(db, user, quiz, submission, RecordingNotifier())

    detail = client.get(f"/api/quizzes/{created['id']}").json()
    assert detail["attempt_count"] == 4
    assert detail["average_score"] == 62.5


def test_attempt_accepts_positional_keys(client: TestClient, register, make_quiz):
    quiz = make_quiz(answers=(3, 2))
    headers, _ = register("student")
    body = {"answers": [{"question_id": "0", "selected_answer": 3}, {"question_id": "1", "selected_answer": 2}]}

    response = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=body, headers=headers)
    assert response.status_code == 201
    assert response.json()["attempt"]["percentage"] == 100


def test_attempt_unlocks_achievement_once(client: TestClient, db: Session, register, make_quiz, notifier):
    _seed_achievement(db, "First Steps", {"type": "quiz_count", "value": 1}, points=50, xp=100)
    quiz = make_quiz(answers=(0, 1, 2, 3))
    headers, _ = register("student")

    first = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=_answers(quiz, [0, 1, 2, 3]), headers=headers)
    data = first.json()
    assert [a["name"] for a in data["newly_unlocked"]] == ["First Steps"]
    assert data["stats"]["total_points"] == 40 + 50
    assert data["stats"]["experience"] == 40 + 100

    [unlock] = notifier.of(ACHIEVEMENT_UNLOCKED)
    assert unlock["achievements"][0]["name"] == "First Steps"

    second = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=_answers(quiz, [0, 1, 2, 3]), headers=headers)
    assert second.json()["newly_unlocked"] == []
    assert second.json()["stats"]["total_points"] == 40 + 50 + 40
    assert len(notifier.of(ACHIEVEMENT_UNLOCKED)) == 1


def test_speed_demon_uses_answer_times_when_total_is_missing(
    client: TestClient, db: Session, register, make_quiz
):
    _seed_achievement(db, "Speed Demon", {"type": "speed_demon"})
    quiz = make_quiz(answers=(0, 1))
    headers, _ = register("student")

    slow = {
        "answers": [
            {"question_id": q["id"], "selected_answer": pick, "time_spent": 300}
            for q, pick in zip(quiz["questions"], [0, 1])
        ],
    }
    data = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=slow, headers=headers).json()
    assert data["attempt"]["time_spent_seconds"] == 600
    assert data["newly_unlocked"] == []

    fast = {
        "answers": [
            {"question_id": q["id"], "selected_answer": pick, "time_spent": 60}
            for q, pick in zip(quiz["questions"], [0, 1])
        ],
    }
    data = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=fast, headers=headers).json()
    assert data["attempt"]["time_spent_seconds"] == 120
    assert [a["name"] for a in data["newly_unlocked"]] == ["Speed Demon"]


def test_reward_experience_can_level_up(client: TestClient, db: Session, register, make_quiz):
    _seed_achievement(db, "Big Bonus", {"type": "quiz_count", "value": 1}, xp=1000)
    _seed_achievement(db, "Rising Star", {"type": "level_reached", "value": 2}, points=10)
    quiz = make_quiz()
    headers, _ = register("student")

    data = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=_answers(quiz, [0, 0, 0, 0]), headers=headers).json()

    assert data["previous_level"] == 1
    assert data["new_level"] == 2
    assert data["leveled_up"] is True
    assert {a["name"] for a in data["newly_unlocked"]} == {"Big Bonus", "Rising Star"}


def test_ungradable_quiz_is_rejected_without_side_effects(client: TestClient, db: Session, register):
    headers, user = register("student")
    quiz = Quiz(
        title="Broken",
        category=CategoryEnum.MATH,
        difficulty=DifficultyEnum.BEGINNER,
        time_limit_minutes=5,
        total_points=10,
        created_by=uuid.UUID(user["id"]),
    )
    quiz.questions = [Question(position=0, text="?", options=["A", "B", "C", "D"], correct_answer=7)]
    db.add(quiz)
    db.commit()

    response = client.post(
        f"/api/quizzes/{quiz.id}/attempt",
        json={"answers": [{"question_id": "0", "selected_answer": 1}]},
        headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "INVALID_QUIZ"
    assert db.query(Attempt).count() == 0
    assert db.get(User, uuid.UUID(user["id"])).total_quizzes == 0


def test_attempt_on_missing_quiz(client: TestClient, register):
    headers, _ = register("student")
    response = client.post(f"/api/quizzes/{uuid.uuid4()}/attempt", json={"answers": []}, headers=headers)
    assert response.status_code == 404


def test_stats_and_progress_after_attempts(client: TestClient, register, make_quiz):
    math = make_quiz(category="math")
    art = make_quiz(category="art")
    headers, _ = register("student")
    client.post(f"/api/quizzes/{math['id']}/attempt", json=_answers(math, [0, 1, 2, 3]), headers=headers)
    client.post(f"/api/quizzes/{art['id']}/attempt", json=_answers(art, [0, 1, 0, 0]), headers=headers)

    stats = client.get("/api/users/stats", headers=headers).json()
    assert stats["overview"]["total_attempts"] == 2
    assert stats["overview"]["best_score"] == 100
    assert stats["overview"]["average_score"] == 75
    assert stats["category_performance"]["art"]["average_score"] == 50
    assert stats["difficulty_performance"]["beginner"]["attempts"] == 2
    assert sum(day["attempts"] for day in stats["weekly_progress"]) == 2

    progress = client.get("/api/users/progress", headers=headers).json()
    assert progress["total_attempts"] == 2
    assert len(progress["recent_attempts"]) == 2
    assert progress["stats"]["total_points"] == 60

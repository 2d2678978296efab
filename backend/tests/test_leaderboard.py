"""Tests for the leaderboard routes."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from edugame.api.leaderboard import _start_of_month, _start_of_week
from edugame.db.models import Attempt, User


def _score(client: TestClient, quiz: dict, headers: dict, correct: int) -> None:
    answers = [
        {"question_id": str(i), "selected_answer": i if i < correct else (i + 1) % 4}
        for i in range(4)
    ]
    response = client.post(f"/api/quizzes/{quiz['id']}/attempt", json={"answers": answers}, headers=headers)
    assert response.status_code == 201, response.text


def test_start_of_week_is_previous_sunday():
    wednesday = datetime(2024, 3, 13, 15, 30, tzinfo=timezone.utc)
    assert _start_of_week(wednesday) == datetime(2024, 3, 10, tzinfo=timezone.utc)
    sunday = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
    assert _start_of_week(sunday) == datetime(2024, 3, 10, tzinfo=timezone.utc)


def test_start_of_month():
    assert _start_of_month(datetime(2024, 3, 13, 9, tzinfo=timezone.utc)) == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_empty_leaderboard(client: TestClient):
    data = client.get("/api/leaderboard/").json()
    assert data["period"] == "overall"
    assert data["leaderboard"] == []
    assert data["pagination"]["total"] == 0


def test_overall_ranks_by_points(client: TestClient, register, make_quiz):
    quiz = make_quiz(answers=(0, 1, 2, 3))
    alice, _ = register("student", full_name="Alice")
    bob, _ = register("student", full_name="Bob")
    _score(client, quiz, alice, correct=2)
    _score(client, quiz, bob, correct=4)

    board = client.get("/api/leaderboard/").json()["leaderboard"]
    top = [(e["rank"], e["full_name"], e["total_points"]) for e in board[:2]]
    assert top == [(1, "Bob", 40), (2, "Alice", 20)]


def test_weekly_only_counts_players_with_recent_attempts(client: TestClient, register, make_quiz):
    quiz = make_quiz()
    alice, _ = register("student", full_name="Alice")
    register("student", full_name="Idle")
    _score(client, quiz, alice, correct=3)
    _score(client, quiz, alice, correct=1)

    data = client.get("/api/leaderboard/weekly").json()
    assert data["period"] == "weekly"
    assert data["start_date"] is not None
    [entry] = data["leaderboard"]
    assert entry["full_name"] == "Alice"
    assert entry["total_points"] == 40
    assert entry["total_quizzes"] == 2
    assert entry["average_score"] == 50


def test_old_attempts_leave_period_boards(client: TestClient, db: Session, register, make_quiz):
    quiz = make_quiz()
    alice, _ = register("student")
    _score(client, quiz, alice, correct=4)

    long_ago = datetime.now(timezone.utc) - timedelta(days=40)
    db.query(Attempt).update({Attempt.submitted_at: long_ago})
    db.commit()

    assert client.get("/api/leaderboard/weekly").json()["leaderboard"] == []
    assert client.get("/api/leaderboard/monthly").json()["leaderboard"] == []
    assert client.get("/api/leaderboard/").json()["leaderboard"][0]["total_points"] == 40


def test_my_rank(client: TestClient, register, make_quiz):
    quiz = make_quiz()
    alice, _ = register("student")
    bob, _ = register("student")
    _score(client, quiz, alice, correct=4)
    _score(client, quiz, bob, correct=1)

    rank = client.get("/api/leaderboard/rank", headers=bob).json()
    assert rank["overall_rank"] == 2
    assert rank["weekly_rank"] == 2
    assert rank["weekly_points"] == 10
    assert rank["total_points"] == 10

    assert client.get("/api/leaderboard/rank", headers=alice).json()["overall_rank"] == 1


def test_weekly_rank_matches_weekly_board(client: TestClient, db: Session, register, make_quiz):
    quiz = make_quiz()
    alice, _ = register("student", full_name="Alice")
    bob, _ = register("student", full_name="Bob")
    carol, carol_user = register("student", full_name="Carol")
    _score(client, quiz, alice, correct=2)
    _score(client, quiz, alice, correct=2)
    _score(client, quiz, bob, correct=4)
    _score(client, quiz, carol, correct=4)
    _score(client, quiz, carol, correct=4)
    db.query(User).filter(User.email == carol_user["email"]).update({User.is_active: False})
    db.commit()

    board = client.get("/api/leaderboard/weekly").json()["leaderboard"]
    assert [(e["rank"], e["full_name"]) for e in board] == [(1, "Alice"), (2, "Bob")]

    # equal points, Alice has taken more quizzes
    assert client.get("/api/leaderboard/rank", headers=alice).json()["weekly_rank"] == 1
    assert client.get("/api/leaderboard/rank", headers=bob).json()["weekly_rank"] == 2


def test_rank_requires_auth(client: TestClient):
    assert client.get("/api/leaderboard/rank").status_code == 401

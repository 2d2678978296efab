"""Attempt schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from edugame.schemas.quiz import Category, Difficulty


class AnswerSubmission(BaseModel):
    """One answer. ``question_id`` may also be a positional index ("0", "1", …)."""

    question_id: str
    selected_answer: int | None = Field(default=None, ge=0, le=3)
    time_spent: float = Field(default=0.0, ge=0)


class AttemptSubmission(BaseModel):
    """POST /api/quizzes/{id}/attempt: all answers for a quiz."""

    answers: list[AnswerSubmission] = []
    # whole quiz, seconds; the per-answer times are summed when omitted
    time_spent: float | None = Field(default=None, ge=0)


class AnswerResult(BaseModel):
    """Audit record for one submitted answer."""

    question_id: str
    selected_answer: int | None = None
    is_correct: bool
    time_spent: float = 0.0
    points: int = 0


class GradedAttempt(BaseModel):
    """Outcome of grading one submission. Also the unit of attempt history."""

    correct_count: int
    total_questions: int
    percentage: int
    raw_points: int
    correctness: list[bool] = []
    answers: list[AnswerResult] = []
    time_spent_seconds: float = 0.0
    time_limit_minutes: int = 0
    category: Category
    difficulty: Difficulty
    quiz_total_points: int = 0
    quiz_id: str | None = None
    submitted_at: datetime | None = None

    model_config = {"frozen": True}


class AttemptRead(BaseModel):
    """Stored attempt returned to its owner."""

    id: uuid.UUID
    quiz_id: uuid.UUID
    quiz_title: str | None = None
    correct_count: int
    total_questions: int
    percentage: int
    points_earned: int
    experience_gained: int
    time_spent_seconds: float
    category: Category
    difficulty: Difficulty
    performance: str
    submitted_at: datetime

    model_config = {"from_attributes": True}

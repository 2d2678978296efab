"""Quiz schemas.

``QuizDefinition`` / ``QuestionDefinition`` are the grading-time view of a
quiz; the ``*Create`` / ``*Read`` models are the HTTP shapes.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from edugame.schemas.common import Pagination


class Category(str, Enum):
    MATH = "math"
    SCIENCE = "science"
    HISTORY = "history"
    LANGUAGE = "language"
    GEOGRAPHY = "geography"
    ART = "art"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)
ALL_DIFFICULTIES: tuple[Difficulty, ...] = tuple(Difficulty)


# ── Grading-time view ─────────────────────────────────────────────────────────


class QuestionDefinition(BaseModel):
    """Only the fields grading needs; question text is irrelevant here."""

    id: str
    options: list[str] = []
    correct_option_index: int | None = None
    points: int = 10


class QuizDefinition(BaseModel):
    """Immutable for the duration of a grading operation."""

    id: str
    questions: list[QuestionDefinition]
    time_limit_minutes: int
    category: Category
    difficulty: Difficulty
    total_points: int | None = None

    @model_validator(mode="after")
    def _default_total_points(self) -> "QuizDefinition":
        if self.total_points is None:
            self.total_points = sum(q.points for q in self.questions)
        return self


# ── HTTP shapes ───────────────────────────────────────────────────────────────


class QuestionCreate(BaseModel):
    text: str = Field(min_length=1)
    options: list[str] = Field(min_length=4, max_length=4)
    correct_answer: int = Field(ge=0, le=3)
    explanation: str | None = None
    points: int = Field(default=10, ge=1)


class QuizCreate(BaseModel):
    """POST /api/quizzes: admin / teacher only."""

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    category: Category
    difficulty: Difficulty
    time_limit_minutes: int = Field(ge=1, le=120)
    questions: list[QuestionCreate] = Field(min_length=1, max_length=50)
    tags: list[str] = []
    is_published: bool = True


class QuizUpdate(BaseModel):
    """PUT /api/quizzes/{id}: every field optional."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    category: Category | None = None
    difficulty: Difficulty | None = None
    time_limit_minutes: int | None = Field(default=None, ge=1, le=120)
    questions: list[QuestionCreate] | None = Field(default=None, min_length=1, max_length=50)
    tags: list[str] | None = None
    is_published: bool | None = None


class QuestionRead(BaseModel):
    """Question as shown to a player: never carries the correct answer."""

    id: uuid.UUID
    text: str
    options: list[str]
    points: int

    model_config = {"from_attributes": True}


class QuizSummaryRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    category: Category
    difficulty: Difficulty
    time_limit_minutes: int
    total_points: int
    question_count: int
    tags: list[str] = []
    attempt_count: int = 0
    average_score: float = 0.0
    created_at: datetime


class QuizRead(QuizSummaryRead):
    questions: list[QuestionRead]


class QuizListResponse(BaseModel):
    quizzes: list[QuizSummaryRead]
    pagination: Pagination

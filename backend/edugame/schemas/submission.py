"""Response shape for a graded quiz submission."""

from pydantic import BaseModel

from edugame.schemas.achievement import AchievementDefinition
from edugame.schemas.attempt import AnswerResult, AttemptRead
from edugame.schemas.progress import UserStatsRead


class AnswerFeedback(AnswerResult):
    """Answer result revealed after submission, with the right option."""

    correct_answer: int
    explanation: str | None = None


class SubmissionResult(BaseModel):
    """POST /api/quizzes/{id}/attempt"""

    attempt: AttemptRead
    answers: list[AnswerFeedback]
    stats: UserStatsRead
    previous_level: int
    new_level: int
    leveled_up: bool
    newly_unlocked: list[AchievementDefinition] = []

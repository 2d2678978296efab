"""ORM row → schema conversions shared by routes and the submission flow."""

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from edugame.db.models import Achievement, Attempt, Quiz, User
from edugame.schemas.achievement import AchievementDefinition
from edugame.schemas.attempt import AttemptRead, GradedAttempt
from edugame.schemas.insight import QuizCandidate
from edugame.schemas.progress import UserStats, UserStatsRead
from edugame.schemas.quiz import QuestionDefinition, QuizDefinition, QuizSummaryRead
from edugame.services.grading import performance_label
from edugame.services.progression import experience_to_next_level

logger = logging.getLogger(__name__)


def quiz_definition(quiz: Quiz) -> QuizDefinition:
    return QuizDefinition(
        id=str(quiz.id),
        questions=[
            QuestionDefinition(
                id=str(q.id),
                options=list(q.options or []),
                correct_option_index=q.correct_answer,
                points=q.points,
            )
            for q in quiz.questions
        ],
        time_limit_minutes=quiz.time_limit_minutes,
        category=quiz.category.value,
        difficulty=quiz.difficulty.value,
        total_points=quiz.total_points,
    )


def quiz_summary(quiz: Quiz) -> QuizSummaryRead:
    return QuizSummaryRead(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description or "",
        category=quiz.category.value,
        difficulty=quiz.difficulty.value,
        time_limit_minutes=quiz.time_limit_minutes,
        total_points=quiz.total_points,
        question_count=len(quiz.questions),
        tags=list(quiz.tags or []),
        attempt_count=quiz.attempt_count,
        average_score=quiz.average_score,
        created_at=quiz.created_at,
    )


def quiz_candidate(quiz: Quiz) -> QuizCandidate:
    return QuizCandidate(
        id=str(quiz.id),
        category=quiz.category.value,
        difficulty=quiz.difficulty.value,
        popularity=quiz.attempt_count,
    )


def graded_from_attempt(attempt: Attempt) -> GradedAttempt:
    """Rebuild the history view of a stored attempt."""
    return GradedAttempt(
        correct_count=attempt.correct_count,
        total_questions=attempt.total_questions,
        percentage=attempt.percentage,
        raw_points=attempt.points_earned,
        time_spent_seconds=attempt.time_spent_seconds,
        time_limit_minutes=attempt.time_limit_minutes,
        category=attempt.category.value,
        difficulty=attempt.difficulty.value,
        quiz_total_points=attempt.quiz_total_points,
        quiz_id=str(attempt.quiz_id),
        submitted_at=attempt.submitted_at,
    )


def attempt_read(attempt: Attempt) -> AttemptRead:
    return AttemptRead(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        quiz_title=attempt.quiz.title if attempt.quiz else None,
        correct_count=attempt.correct_count,
        total_questions=attempt.total_questions,
        percentage=attempt.percentage,
        points_earned=attempt.points_earned,
        experience_gained=attempt.experience_gained,
        time_spent_seconds=attempt.time_spent_seconds,
        category=attempt.category.value,
        difficulty=attempt.difficulty.value,
        performance=performance_label(attempt.percentage),
        submitted_at=attempt.submitted_at,
    )


def stats_of(user: User) -> UserStats:
    return UserStats.model_validate(user)


def stats_read(stats: UserStats) -> UserStatsRead:
    return UserStatsRead(
        **stats.model_dump(),
        experience_to_next_level=experience_to_next_level(stats.experience),
    )


def write_stats(user: User, stats: UserStats) -> None:
    """Copy engine stats back onto the ORM row."""
    for field in UserStats.model_fields:
        setattr(user, field, getattr(stats, field))


def achievement_definition(row: Achievement) -> AchievementDefinition:
    return AchievementDefinition(
        id=str(row.id),
        name=row.name,
        description=row.description or "",
        icon=row.icon,
        category=row.category.value,
        criterion=row.criterion,
        reward_points=row.reward_points,
        reward_experience=row.reward_experience,
        rarity=row.rarity.value,
        max_earned=row.max_earned,
        is_active=row.is_active,
    )


def catalog_from_rows(rows: Iterable[Achievement]) -> list[AchievementDefinition]:
    """Convert catalog rows, skipping any that no longer validate."""
    catalog: list[AchievementDefinition] = []
    for row in rows:
        try:
            catalog.append(achievement_definition(row))
        except ValidationError as e:
            logger.warning("Skipping invalid achievement %s: %s", row.id, e)
    return catalog

"""Quiz submission flow: grade → progress → achievements → persist → notify.

The user row is locked (``SELECT … FOR UPDATE``) for the whole
read-modify-write, so two submissions from the same user are applied one
after the other and cannot both unlock the same milestone. The unique
``(user_id, achievement_id, sequence)`` constraint backs this up on
databases that ignore row locks. The quiz row is locked next, so its
attempt count and running mean include every submission.
"""

import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edugame.config import settings
from edugame.core.exceptions import SubmissionConflictError
from edugame.db.models import Achievement, Attempt, AttemptAnswer, Quiz, User, UserAchievement
from edugame.schemas.achievement import EvaluationContext, EvaluationResult
from edugame.schemas.attempt import AttemptSubmission, GradedAttempt
from edugame.schemas.submission import AnswerFeedback, SubmissionResult
from edugame.services import leaderboard_cache
from edugame.services.achievements import evaluate
from edugame.services.grading import grade
from edugame.services.notifier import ACHIEVEMENT_UNLOCKED, QUIZ_COMPLETED, Notifier
from edugame.services.progression import apply_attempt, apply_rewards, update_streak
from edugame.services.records import (
    attempt_read,
    catalog_from_rows,
    graded_from_attempt,
    quiz_definition,
    stats_of,
    stats_read,
    write_stats,
)

logger = logging.getLogger(__name__)


def _for_update(db: Session, model, row_id: uuid.UUID):
    """Row lock that also refreshes any copy already in the session."""
    return db.query(model).filter(model.id == row_id).with_for_update().populate_existing()


def _earned_counts(db: Session, user_id: uuid.UUID) -> dict[str, int]:
    rows = (
        db.query(UserAchievement.achievement_id, func.count(UserAchievement.id))
        .filter(UserAchievement.user_id == user_id)
        .group_by(UserAchievement.achievement_id)
        .all()
    )
    return {str(achievement_id): count for achievement_id, count in rows}


def _history(db: Session, user_id: uuid.UUID) -> list[GradedAttempt]:
    rows = (
        db.query(Attempt)
        .filter(Attempt.user_id == user_id)
        .order_by(Attempt.submitted_at, Attempt.id)
        .all()
    )
    return [graded_from_attempt(a) for a in rows]


def _record_attempt(db: Session, user: User, quiz: Quiz, graded: GradedAttempt, now: datetime) -> Attempt:
    attempt = Attempt(
        quiz_id=quiz.id,
        user_id=user.id,
        correct_count=graded.correct_count,
        total_questions=graded.total_questions,
        percentage=graded.percentage,
        points_earned=graded.raw_points,
        experience_gained=graded.raw_points,
        quiz_total_points=graded.quiz_total_points,
        time_spent_seconds=graded.time_spent_seconds,
        time_limit_minutes=graded.time_limit_minutes,
        category=quiz.category,
        difficulty=quiz.difficulty,
        submitted_at=now,
    )
    attempt.answers = [
        AttemptAnswer(
            question_ref=a.question_id,
            selected_answer=a.selected_answer,
            is_correct=a.is_correct,
            time_spent=a.time_spent,
            points=a.points,
        )
        for a in graded.answers
    ]
    db.add(attempt)

    # running mean over every attempt on this quiz
    count = quiz.attempt_count + 1
    quiz.average_score = round((quiz.average_score * quiz.attempt_count + graded.percentage) / count, 2)
    quiz.attempt_count = count

    db.flush()
    return attempt


def _record_unlocks(
    db: Session,
    user: User,
    evaluation: EvaluationResult,
    counts: dict[str, int],
    now: datetime,
) -> None:
    for entry in evaluation.newly_unlocked:
        db.add(
            UserAchievement(
                user_id=user.id,
                achievement_id=uuid.UUID(entry.id),
                sequence=counts.get(entry.id, 0) + 1,
                earned_at=now,
            )
        )


def _notify(notifier: Notifier, event: str, payload: dict) -> None:
    try:
        notifier.notify(event, payload)
    except Exception as e:
        logger.warning("Notification %s failed (non-fatal): %s", event, e)


def submit_attempt(
    db: Session,
    user: User,
    quiz: Quiz,
    submission: AttemptSubmission,
    notifier: Notifier,
    today: date | None = None,
) -> SubmissionResult:
    """Grade a submission and apply everything it earns, in one transaction.

    Raises ``InvalidQuizError`` before touching any state when the quiz
    cannot be graded, and ``SubmissionConflictError`` if a concurrent
    submission committed the same unlock first.
    """
    graded = grade(quiz_definition(quiz), submission)

    now = datetime.now(timezone.utc)
    today = today or now.date()

    # user before quiz, always in that order
    locked = _for_update(db, User, user.id).one()
    quiz = _for_update(db, Quiz, quiz.id).one()
    before = stats_of(locked)
    streaked = update_streak(before, locked.last_activity_date, today)
    progressed = apply_attempt(streaked, graded)

    attempt = _record_attempt(db, locked, quiz, graded, now)

    counts = _earned_counts(db, locked.id)
    catalog = catalog_from_rows(db.query(Achievement).filter(Achievement.is_active.is_(True)).all())
    evaluation = evaluate(
        catalog,
        set(counts),
        progressed.stats,
        _history(db, locked.id),
        context=EvaluationContext(latest_attempt=graded),
        earned_counts=counts,
        max_level_passes=settings.MAX_LEVEL_PASSES,
    )
    _record_unlocks(db, locked, evaluation, counts, now)

    rewarded = apply_rewards(
        progressed.stats, evaluation.stats_delta.points, evaluation.stats_delta.experience
    ).stats
    write_stats(locked, rewarded)
    locked.last_activity_date = today

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Submission conflict for user %s: %s", locked.id, e)
        raise SubmissionConflictError(details={"quiz_id": str(quiz.id)}) from e

    db.refresh(attempt)
    leaderboard_cache.invalidate()

    logger.info(
        "User %s scored %d%% on quiz %s (+%d pts, %d unlock(s))",
        locked.id, graded.percentage, quiz.id, graded.raw_points, len(evaluation.newly_unlocked),
    )

    leveled_up = rewarded.level > before.level
    _notify(notifier, QUIZ_COMPLETED, {
        "user_id": str(locked.id),
        "quiz_id": str(quiz.id),
        "attempt_id": str(attempt.id),
        "percentage": graded.percentage,
        "points_earned": graded.raw_points,
        "level": rewarded.level,
        "leveled_up": leveled_up,
    })
    if evaluation.newly_unlocked:
        _notify(notifier, ACHIEVEMENT_UNLOCKED, {
            "user_id": str(locked.id),
            "achievements": [
                {
                    "id": a.id,
                    "name": a.name,
                    "icon": a.icon,
                    "rarity": a.rarity.value,
                    "reward_points": a.reward_points,
                    "reward_experience": a.reward_experience,
                }
                for a in evaluation.newly_unlocked
            ],
        })

    questions = {str(q.id): q for q in quiz.questions}
    feedback = [
        AnswerFeedback(
            **a.model_dump(),
            correct_answer=questions[a.question_id].correct_answer,
            explanation=questions[a.question_id].explanation,
        )
        for a in graded.answers
    ]

    return SubmissionResult(
        attempt=attempt_read(attempt),
        answers=feedback,
        stats=stats_read(rewarded),
        previous_level=before.level,
        new_level=rewarded.level,
        leveled_up=leveled_up,
        newly_unlocked=evaluation.newly_unlocked,
    )

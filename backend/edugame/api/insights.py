"""Performance insights, predictions and quiz recommendations."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from edugame.api.deps import get_current_user
from edugame.db.models import Attempt, Quiz, User
from edugame.db.session import get_db
from edugame.schemas.attempt import GradedAttempt
from edugame.schemas.insight import (
    InsightCard,
    InsightSummary,
    LearningPathRead,
    Prediction,
    RecommendationsRead,
    RecommendedQuiz,
)
from edugame.services import insights as insight_service
from edugame.services.progression import LEVEL_XP
from edugame.services.records import graded_from_attempt, quiz_candidate, quiz_summary

logger = logging.getLogger(__name__)
router = APIRouter()


def _history(db: Session, user: User) -> list[GradedAttempt]:
    rows = (
        db.query(Attempt)
        .filter(Attempt.user_id == user.id)
        .order_by(Attempt.submitted_at, Attempt.id)
        .all()
    )
    return [graded_from_attempt(a) for a in rows]


def _recommend(db: Session, user: User, history: list[GradedAttempt], limit: int):
    summary = insight_service.summarize(history)
    quizzes = (
        db.query(Quiz)
        .filter(Quiz.is_active.is_(True), Quiz.is_published.is_(True))
        .order_by(Quiz.created_at)
        .all()
    )
    by_id = {str(q.id): q for q in quizzes}
    completed = {a.quiz_id for a in history if a.quiz_id}
    picks = insight_service.recommend_quizzes(
        [quiz_candidate(q) for q in quizzes],
        summary,
        preferred_categories=user.preferred_subjects or [],
        completed_ids=completed,
        limit=limit,
    )
    recommended = [
        RecommendedQuiz(quiz=quiz_summary(by_id[p.quiz_id]), reason=p.reason, priority=p.priority)
        for p in picks
    ]
    return summary, recommended


@router.get("/summary", response_model=InsightSummary)
def summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Average, trend, consistency and weak / strong categories."""
    return insight_service.summarize(_history(db, current_user))


@router.get("/insights", response_model=list[InsightCard])
def insights(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Short learning tips derived from the summary and streak."""
    summary = insight_service.summarize(_history(db, current_user))
    return insight_service.learning_insights(summary, current_user.current_streak)


@router.get("/recommendations", response_model=RecommendationsRead)
def recommendations(
    limit: int = Query(default=5, ge=1, le=20),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Quizzes the caller has not taken yet, with why each was picked."""
    summary, recommended = _recommend(db, current_user, _history(db, current_user), limit)
    return RecommendationsRead(
        recommendations=recommended,
        summary=summary,
        recommended_difficulty=insight_service.recommended_difficulty(summary.average_score),
    )


@router.get("/predict/{quiz_id}", response_model=Prediction)
def predict(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Expected score on a quiz, from past attempts at the same category and difficulty."""
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id, Quiz.is_active.is_(True)).first()
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")

    prediction = insight_service.predict_score(
        _history(db, current_user), quiz.category.value, quiz.difficulty.value
    )
    if prediction is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No attempts yet to predict from",
        )
    return prediction


@router.get("/learning-path", response_model=LearningPathRead)
def learning_path(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Next milestone, recommendations, insight cards and suggested actions."""
    history = _history(db, current_user)
    summary, recommended = _recommend(db, current_user, history, limit=10)
    next_milestone = current_user.level * LEVEL_XP
    return LearningPathRead(
        current_level=current_user.level,
        next_milestone=next_milestone,
        progress=round(current_user.experience / next_milestone * 100, 1),
        recommendations=recommended,
        insights=insight_service.learning_insights(summary, current_user.current_streak),
        suggested_actions=insight_service.suggested_actions(summary, current_user.current_streak),
    )

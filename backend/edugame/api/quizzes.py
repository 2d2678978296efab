"""Quiz catalogue, authoring and attempt routes."""

import logging
import math
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from edugame.api.deps import get_current_user, get_notifier, require_author
from edugame.db.models import CategoryEnum, DifficultyEnum, Question, Quiz, RoleEnum, User
from edugame.db.session import get_db
from edugame.schemas.attempt import AttemptSubmission
from edugame.schemas.common import Pagination
from edugame.schemas.quiz import (
    Category,
    Difficulty,
    QuestionCreate,
    QuestionRead,
    QuizCreate,
    QuizListResponse,
    QuizRead,
    QuizUpdate,
)
from edugame.schemas.submission import SubmissionResult
from edugame.services.notifier import Notifier
from edugame.services.records import quiz_summary
from edugame.services.submission import submit_attempt

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_quiz_or_404(db: Session, quiz_id: uuid.UUID) -> Quiz:
    quiz = (
        db.query(Quiz)
        .filter(Quiz.id == quiz_id, Quiz.is_active.is_(True))
        .first()
    )
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz


def _build_questions(items: list[QuestionCreate]) -> list[Question]:
    return [
        Question(
            position=i,
            text=q.text,
            options=list(q.options),
            correct_answer=q.correct_answer,
            explanation=q.explanation,
            points=q.points,
        )
        for i, q in enumerate(items)
    ]


def _to_read(quiz: Quiz) -> QuizRead:
    return QuizRead(
        **quiz_summary(quiz).model_dump(),
        questions=[QuestionRead.model_validate(q) for q in quiz.questions],
    )


def _check_owner(quiz: Quiz, user: User) -> None:
    if user.role != RoleEnum.ADMIN and quiz.created_by != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the quiz author or an admin can change this quiz",
        )


@router.get("/", response_model=QuizListResponse)
def list_quizzes(
    category: Category | None = None,
    difficulty: Difficulty | None = None,
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List published quizzes, newest first. Correct answers are never included."""
    q = db.query(Quiz).filter(Quiz.is_active.is_(True), Quiz.is_published.is_(True))
    if category is not None:
        q = q.filter(Quiz.category == CategoryEnum(category.value))
    if difficulty is not None:
        q = q.filter(Quiz.difficulty == DifficultyEnum(difficulty.value))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Quiz.title.ilike(pattern), Quiz.description.ilike(pattern)))

    total = q.count()
    rows = (
        q.order_by(Quiz.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return QuizListResponse(
        quizzes=[quiz_summary(r) for r in rows],
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


@router.get("/{quiz_id}", response_model=QuizRead)
def get_quiz(quiz_id: uuid.UUID, db: Session = Depends(get_db)):
    """Return one quiz with its questions, without correct answers."""
    return _to_read(_get_quiz_or_404(db, quiz_id))


@router.post("/", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
def create_quiz(
    body: QuizCreate,
    current_user: User = Depends(require_author),
    db: Session = Depends(get_db),
):
    """Create a quiz (admin / teacher). Total points are the sum of question points."""
    quiz = Quiz(
        title=body.title,
        description=body.description,
        category=CategoryEnum(body.category.value),
        difficulty=DifficultyEnum(body.difficulty.value),
        time_limit_minutes=body.time_limit_minutes,
        total_points=sum(q.points for q in body.questions),
        tags=list(body.tags),
        is_published=body.is_published,
        created_by=current_user.id,
    )
    quiz.questions = _build_questions(body.questions)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("Quiz %s created by %s (%d questions)", quiz.id, current_user.id, len(quiz.questions))
    return _to_read(quiz)


@router.put("/{quiz_id}", response_model=QuizRead)
def update_quiz(
    quiz_id: uuid.UUID,
    body: QuizUpdate,
    current_user: User = Depends(require_author),
    db: Session = Depends(get_db),
):
    """Update a quiz; replacing questions recomputes its total points."""
    quiz = _get_quiz_or_404(db, quiz_id)
    _check_owner(quiz, current_user)

    changes = body.model_dump(exclude_unset=True, exclude={"questions", "category", "difficulty"})
    for field, value in changes.items():
        setattr(quiz, field, value)
    if body.category is not None:
        quiz.category = CategoryEnum(body.category.value)
    if body.difficulty is not None:
        quiz.difficulty = DifficultyEnum(body.difficulty.value)
    if body.questions is not None:
        quiz.questions = _build_questions(body.questions)
        quiz.total_points = sum(q.points for q in body.questions)

    db.commit()
    db.refresh(quiz)
    return _to_read(quiz)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(
    quiz_id: uuid.UUID,
    current_user: User = Depends(require_author),
    db: Session = Depends(get_db),
):
    """Retire a quiz. Past attempts keep pointing at it."""
    quiz = _get_quiz_or_404(db, quiz_id)
    _check_owner(quiz, current_user)
    quiz.is_active = False
    db.commit()


@router.post("/{quiz_id}/attempt", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
def attempt_quiz(
    quiz_id: uuid.UUID,
    body: AttemptSubmission,
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """Grade a submission, update progression and unlock achievements."""
    quiz = _get_quiz_or_404(db, quiz_id)
    return submit_attempt(db, current_user, quiz, body, notifier)

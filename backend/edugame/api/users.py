"""User registration, login, profile and progression routes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from edugame.api.deps import get_current_user
from edugame.core.security import create_access_token, hash_password, verify_password
from edugame.db.models import Attempt, DifficultyEnum, RoleEnum, User, UserAchievement
from edugame.db.session import get_db
from edugame.schemas.progress import LevelUpRead, ProgressRead, StatsOverview, StatsRead
from edugame.schemas.user import AuthResponse, UserCreate, UserLogin, UserRead, UserUpdate
from edugame.services.grading import round_half_up
from edugame.services.insights import category_breakdown, daily_progress, difficulty_breakdown
from edugame.services.progression import experience_to_next_level, level_for
from edugame.services.records import attempt_read, graded_from_attempt, stats_of, stats_read

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_response(user: User) -> AuthResponse:
    token = create_access_token(subject=str(user.id), role=user.role.value)
    return AuthResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    """Create a new player or teacher account."""
    existing = db.query(User).filter(User.email == body.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
        role=RoleEnum(body.role.value),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(body: UserLogin, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token + user profile."""
    user = db.query(User).filter(User.email == body.email).first()
    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account deactivated",
        )
    return _auth_response(user)


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.patch("/me", response_model=UserRead)
def update_profile(
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name and learning preferences."""
    if body.full_name is not None:
        current_user.full_name = body.full_name
    if body.preferred_difficulty is not None:
        current_user.preferred_difficulty = DifficultyEnum(body.preferred_difficulty.value)
    if body.preferred_subjects is not None:
        current_user.preferred_subjects = [c.value for c in body.preferred_subjects]
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/progress", response_model=ProgressRead)
def progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Stats, recent attempts and unlocked achievements."""
    attempts = (
        db.query(Attempt)
        .filter(Attempt.user_id == current_user.id)
        .order_by(Attempt.submitted_at.desc())
        .all()
    )
    achievement_ids = [
        row.achievement_id
        for row in db.query(UserAchievement).filter(UserAchievement.user_id == current_user.id).all()
    ]
    average = round(sum(a.percentage for a in attempts) / len(attempts), 2) if attempts else 0.0

    return ProgressRead(
        user_id=current_user.id,
        stats=stats_read(stats_of(current_user)),
        total_attempts=len(attempts),
        average_score=average,
        recent_attempts=[attempt_read(a) for a in attempts[:10]],
        achievement_ids=achievement_ids,
        last_attempt_at=attempts[0].submitted_at if attempts else None,
    )


@router.get("/stats", response_model=StatsRead)
def stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Overview plus per-category, per-difficulty and last-7-day breakdowns."""
    rows = (
        db.query(Attempt)
        .filter(Attempt.user_id == current_user.id)
        .order_by(Attempt.submitted_at)
        .all()
    )
    history = [graded_from_attempt(a) for a in rows]
    overview = StatsOverview(
        total_attempts=len(history),
        average_score=round_half_up(sum(a.percentage for a in history) / len(history)) if history else 0,
        total_points=sum(a.raw_points for a in history),
        best_score=max((a.percentage for a in history), default=0),
        total_time_spent=sum(a.time_spent_seconds for a in history),
    )
    return StatsRead(
        user_id=current_user.id,
        stats=stats_read(stats_of(current_user)),
        overview=overview,
        category_performance=category_breakdown(history),
        difficulty_performance=difficulty_breakdown(history),
        weekly_progress=daily_progress(history, datetime.now(timezone.utc).date()),
    )


@router.post("/level-up", response_model=LevelUpRead)
def level_up(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Re-derive the stored level from experience."""
    previous = current_user.level
    current_user.level = level_for(current_user.experience)
    db.commit()
    if current_user.level != previous:
        logger.info("User %s level corrected %d → %d", current_user.id, previous, current_user.level)
    return LevelUpRead(
        leveled_up=current_user.level > previous,
        previous_level=previous,
        level=current_user.level,
        experience=current_user.experience,
        experience_to_next_level=experience_to_next_level(current_user.experience),
    )

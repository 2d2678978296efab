"""Achievement catalogue and per-user unlock routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from edugame.api.deps import get_current_user, require_admin
from edugame.config import settings
from edugame.core.exceptions import InvalidCriterionError
from edugame.db.models import (
    Achievement,
    AchievementCategoryEnum,
    Attempt,
    RarityEnum,
    User,
    UserAchievement,
)
from edugame.db.session import get_db
from edugame.schemas.achievement import (
    AchievementCreate,
    AchievementDefinition,
    AchievementProgress,
    MyAchievementsRead,
    KNOWN_CRITERION_TYPES,
    UnknownCriterion,
    UnlockedAchievementRead,
)
from edugame.services import achievements as achievement_service
from edugame.services.records import achievement_definition, catalog_from_rows, graded_from_attempt, stats_of

logger = logging.getLogger(__name__)
router = APIRouter()


def _active_catalog(db: Session) -> list[AchievementDefinition]:
    rows = (
        db.query(Achievement)
        .filter(Achievement.is_active.is_(True))
        .order_by(Achievement.created_at)
        .all()
    )
    return catalog_from_rows(rows)


def _unlocked_rows(db: Session, user: User) -> list[UserAchievement]:
    return (
        db.query(UserAchievement)
        .filter(UserAchievement.user_id == user.id)
        .order_by(UserAchievement.earned_at.desc())
        .all()
    )


def _unlocked_read(row: UserAchievement) -> UnlockedAchievementRead:
    return UnlockedAchievementRead(
        **achievement_definition(row.achievement).model_dump(),
        earned_at=row.earned_at,
    )


@router.get("/", response_model=list[AchievementDefinition])
def list_achievements(db: Session = Depends(get_db)):
    """Active, non-hidden catalogue."""
    rows = (
        db.query(Achievement)
        .filter(Achievement.is_active.is_(True), Achievement.is_hidden.is_(False))
        .order_by(Achievement.created_at)
        .all()
    )
    return catalog_from_rows(rows)


@router.post("/", response_model=AchievementDefinition, status_code=status.HTTP_201_CREATED)
def create_achievement(
    body: AchievementCreate,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Add a catalogue entry (admin only). The criterion is validated on input."""
    if isinstance(body.criterion, UnknownCriterion):
        raise InvalidCriterionError(
            f"Unknown criterion type: {body.criterion.type}",
            details={"known_types": sorted(KNOWN_CRITERION_TYPES)},
        )
    if db.query(Achievement).filter(Achievement.name == body.name).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Achievement name already exists",
        )
    row = Achievement(
        name=body.name,
        description=body.description,
        icon=body.icon,
        category=AchievementCategoryEnum(body.category.value),
        criterion=body.criterion.model_dump(mode="json", exclude_none=True),
        reward_points=body.reward_points,
        reward_experience=body.reward_experience,
        rarity=RarityEnum(body.rarity.value),
        max_earned=body.max_earned,
        is_active=body.is_active,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Achievement %s (%s) created", row.name, row.criterion.get("type"))
    return achievement_definition(row)


@router.get("/me", response_model=MyAchievementsRead)
def my_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Unlocked and still-locked achievements for the caller."""
    unlocked_rows = _unlocked_rows(db, current_user)
    unlocked = [_unlocked_read(r) for r in unlocked_rows]
    unlocked_ids = {str(r.achievement_id) for r in unlocked_rows}
    catalog = _active_catalog(db)
    locked = [a for a in catalog if a.id not in unlocked_ids]
    return MyAchievementsRead(
        unlocked=unlocked,
        locked=locked,
        total_unlocked=len(unlocked),
        total_available=len(catalog),
    )


@router.get("/me/progress", response_model=list[AchievementProgress])
def my_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Progress towards every active achievement."""
    history = [
        graded_from_attempt(a)
        for a in db.query(Attempt).filter(Attempt.user_id == current_user.id).all()
    ]
    unlocked_ids = {str(r.achievement_id) for r in _unlocked_rows(db, current_user)}
    return achievement_service.progress(
        _active_catalog(db), unlocked_ids, stats_of(current_user), history
    )


@router.get("/me/recent", response_model=list[UnlockedAchievementRead])
def my_recent(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Most recently unlocked achievements, newest first."""
    rows = achievement_service.recent_unlocks(
        _unlocked_rows(db, current_user), limit=settings.RECENT_ACHIEVEMENTS_LIMIT
    )
    return [_unlocked_read(r) for r in rows]

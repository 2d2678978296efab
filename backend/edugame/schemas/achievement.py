"""Achievement schemas.

A criterion is a tagged union keyed on ``type``: each variant carries only
the fields its rule reads. Unrecognised types are kept as
``UnknownCriterion`` so a stale catalog row never breaks evaluation.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from edugame.schemas.attempt import GradedAttempt
from edugame.schemas.progress import UserStats
from edugame.schemas.quiz import Category, Difficulty

logger = logging.getLogger(__name__)


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AchievementCategory(str, Enum):
    QUIZ = "quiz"
    STREAK = "streak"
    POINTS = "points"
    LEVEL = "level"
    SPECIAL = "special"
    SOCIAL = "social"


# ── Criterion variants ────────────────────────────────────────────────────────


class QuizCountCriterion(BaseModel):
    type: Literal["quiz_count"] = "quiz_count"
    value: int = Field(ge=1)


class PointsEarnedCriterion(BaseModel):
    type: Literal["points_earned"] = "points_earned"
    value: int = Field(ge=1)


class StreakDaysCriterion(BaseModel):
    type: Literal["streak_days"] = "streak_days"
    value: int = Field(ge=1)


class LevelReachedCriterion(BaseModel):
    type: Literal["level_reached"] = "level_reached"
    value: int = Field(ge=1)


class ScoreAchievedCriterion(BaseModel):
    type: Literal["score_achieved"] = "score_achieved"
    value: float = Field(ge=0, le=100)
    difficulty: Difficulty | None = None


class CategoryMasteryCriterion(BaseModel):
    type: Literal["category_mastery"] = "category_mastery"
    value: int = Field(ge=1)
    category: Category


class PerfectScoreCriterion(BaseModel):
    type: Literal["perfect_score"] = "perfect_score"


class SpeedDemonCriterion(BaseModel):
    type: Literal["speed_demon"] = "speed_demon"


class QuizMasterCriterion(BaseModel):
    """Attempted every category at least once."""

    type: Literal["quiz_master"] = "quiz_master"


class StreakMasterCriterion(BaseModel):
    type: Literal["streak_master"] = "streak_master"
    value: int = Field(ge=1)


class PointsMilestoneCriterion(BaseModel):
    type: Literal["points_milestone"] = "points_milestone"
    value: int = Field(ge=1)


class UnknownCriterion(BaseModel):
    type: str
    model_config = ConfigDict(extra="allow")


KnownCriterion = Annotated[
    Union[
        QuizCountCriterion,
        PointsEarnedCriterion,
        StreakDaysCriterion,
        LevelReachedCriterion,
        ScoreAchievedCriterion,
        CategoryMasteryCriterion,
        PerfectScoreCriterion,
        SpeedDemonCriterion,
        QuizMasterCriterion,
        StreakMasterCriterion,
        PointsMilestoneCriterion,
    ],
    Field(discriminator="type"),
]

Criterion = Union[
    QuizCountCriterion,
    PointsEarnedCriterion,
    StreakDaysCriterion,
    LevelReachedCriterion,
    ScoreAchievedCriterion,
    CategoryMasteryCriterion,
    PerfectScoreCriterion,
    SpeedDemonCriterion,
    QuizMasterCriterion,
    StreakMasterCriterion,
    PointsMilestoneCriterion,
    UnknownCriterion,
]

CRITERION_MODELS: tuple[type[BaseModel], ...] = get_args(get_args(KnownCriterion)[0])
KNOWN_CRITERION_TYPES: frozenset[str] = frozenset(
    m.model_fields["type"].default for m in CRITERION_MODELS
)

_known_adapter: TypeAdapter = TypeAdapter(KnownCriterion)


def parse_criterion(raw: Any) -> Criterion:
    """Build a criterion variant from its JSON form.

    Raises ``pydantic.ValidationError`` when a known type lacks a field it
    requires (e.g. ``category_mastery`` without ``category``).
    """
    if isinstance(raw, BaseModel):
        return raw  # type: ignore[return-value]
    if not isinstance(raw, dict) or "type" not in raw:
        raise ValueError("criterion must be an object with a 'type' field")
    if raw["type"] not in KNOWN_CRITERION_TYPES:
        return UnknownCriterion.model_validate(raw)
    return _known_adapter.validate_python(raw)


def load_criterion(raw: Any) -> Criterion:
    """Like ``parse_criterion``, for criteria already stored in the catalog.

    A stored known type that no longer validates is kept as an
    ``UnknownCriterion``, which never unlocks, instead of raising.
    """
    try:
        return parse_criterion(raw)
    except ValidationError as e:
        logger.warning("Stored criterion %r no longer validates: %s", raw, e)
        return UnknownCriterion.model_validate(raw)


# ── Catalog ───────────────────────────────────────────────────────────────────


class AchievementBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    icon: str = "🏅"
    category: AchievementCategory = AchievementCategory.QUIZ
    criterion: Criterion
    reward_points: int = Field(default=0, ge=0)
    reward_experience: int = Field(default=0, ge=0)
    rarity: Rarity = Rarity.COMMON
    max_earned: int = Field(default=1, ge=1)
    is_active: bool = True

    @field_validator("criterion", mode="before")
    @classmethod
    def _parse_criterion(cls, v: Any) -> Criterion:
        return load_criterion(v)


class AchievementCreate(AchievementBase):
    """POST /api/achievements: admin only."""

    @field_validator("criterion", mode="before")
    @classmethod
    def _parse_criterion(cls, v: Any) -> Criterion:
        return parse_criterion(v)


class AchievementDefinition(AchievementBase):
    """Catalog entry as the evaluator sees it."""

    id: str


class UnlockedAchievementRead(AchievementDefinition):
    earned_at: datetime


class MyAchievementsRead(BaseModel):
    """GET /api/achievements/me"""

    unlocked: list[UnlockedAchievementRead]
    locked: list[AchievementDefinition]
    total_unlocked: int
    total_available: int


class AchievementProgress(BaseModel):
    achievement_id: str
    name: str
    is_unlocked: bool
    current_progress: float
    max_progress: float
    progress_percentage: int


# ── Evaluator I/O ─────────────────────────────────────────────────────────────


class EvaluationContext(BaseModel):
    latest_attempt: GradedAttempt | None = None


class StatsDelta(BaseModel):
    points: int = 0
    experience: int = 0


class EvaluationResult(BaseModel):
    newly_unlocked: list[AchievementDefinition] = []
    stats_delta: StatsDelta = StatsDelta()
    projected_stats: UserStats
    passes: int = 1

"""Progression / stats schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from edugame.schemas.attempt import AttemptRead


class UserStats(BaseModel):
    """Cumulative per-user counters. ``level`` is derived from ``experience``."""

    total_points: int = 0
    total_quizzes: int = 0
    experience: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0

    model_config = {"frozen": True, "from_attributes": True}


class ProgressionResult(BaseModel):
    """Stats after applying one attempt, with the level transition it caused."""

    stats: UserStats
    previous_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.previous_level


class UserStatsRead(UserStats):
    experience_to_next_level: int


class CategoryBreakdown(BaseModel):
    attempts: int
    average_score: int
    total_points: int


class DailyProgress(BaseModel):
    day: str  # YYYY-MM-DD
    attempts: int
    average_score: int
    total_points: int


class StatsOverview(BaseModel):
    total_attempts: int = 0
    average_score: int = 0
    total_points: int = 0
    best_score: int = 0
    total_time_spent: float = 0.0


class StatsRead(BaseModel):
    """GET /api/users/stats"""

    user_id: uuid.UUID
    stats: UserStatsRead
    overview: StatsOverview
    category_performance: dict[str, CategoryBreakdown]
    difficulty_performance: dict[str, CategoryBreakdown]
    weekly_progress: list[DailyProgress] = []


class ProgressRead(BaseModel):
    """GET /api/users/progress"""

    user_id: uuid.UUID
    stats: UserStatsRead
    total_attempts: int
    average_score: float
    recent_attempts: list[AttemptRead] = []
    achievement_ids: list[uuid.UUID] = []
    last_attempt_at: datetime | None = None


class LevelUpRead(BaseModel):
    """POST /api/users/level-up"""

    leveled_up: bool
    previous_level: int
    level: int
    experience: int
    experience_to_next_level: int

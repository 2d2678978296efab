"""Leaderboard schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from edugame.schemas.common import Pagination


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: uuid.UUID
    full_name: str
    total_points: int
    total_quizzes: int
    level: int
    experience: int
    average_score: int | None = None


class LeaderboardRead(BaseModel):
    period: str  # overall | weekly | monthly
    start_date: datetime | None = None
    leaderboard: list[LeaderboardEntry]
    pagination: Pagination


class RankRead(BaseModel):
    overall_rank: int
    weekly_rank: int
    weekly_points: int
    total_points: int

"""Leaderboard routes: overall, weekly, monthly and the caller's rank.

Rankings order by points, then quizzes taken. Pages are cached in Redis for
``LEADERBOARD_CACHE_TTL_SECONDS`` and invalidated on every submission.
"""

import logging
import math
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, distinct, func, or_
from sqlalchemy.orm import Session

from edugame.api.deps import get_current_user
from edugame.db.models import Attempt, User
from edugame.db.session import get_db
from edugame.schemas.common import Pagination
from edugame.schemas.leaderboard import LeaderboardEntry, LeaderboardRead, RankRead
from edugame.services import leaderboard_cache
from edugame.services.grading import round_half_up

logger = logging.getLogger(__name__)
router = APIRouter()


def _start_of_week(now: datetime) -> datetime:
    """Most recent Sunday, midnight UTC."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=(midnight.weekday() + 1) % 7)


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _in_period(start: datetime):
    return and_(User.is_active.is_(True), Attempt.submitted_at >= start)


def _overall(db: Session, page: int, limit: int) -> LeaderboardRead:
    base = db.query(User).filter(User.is_active.is_(True))
    total = base.count()
    users = (
        base.order_by(User.total_points.desc(), User.total_quizzes.desc(), User.created_at)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    entries = [
        LeaderboardEntry(
            rank=(page - 1) * limit + i + 1,
            user_id=u.id,
            full_name=u.full_name,
            total_points=u.total_points,
            total_quizzes=u.total_quizzes,
            level=u.level,
            experience=u.experience,
        )
        for i, u in enumerate(users)
    ]
    return LeaderboardRead(
        period="overall",
        leaderboard=entries,
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


def _period(db: Session, period: str, start: datetime, page: int, limit: int) -> LeaderboardRead:
    points = func.sum(Attempt.points_earned).label("points")
    quizzes = func.count(Attempt.id).label("quizzes")
    average = func.avg(Attempt.percentage).label("average")

    in_period = _in_period(start)
    total = (
        db.query(func.count(distinct(Attempt.user_id)))
        .join(User, User.id == Attempt.user_id)
        .filter(in_period)
        .scalar()
    ) or 0
    rows = (
        db.query(User, points, quizzes, average)
        .join(Attempt, Attempt.user_id == User.id)
        .filter(in_period)
        .group_by(User.id)
        .order_by(points.desc(), quizzes.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    entries = [
        LeaderboardEntry(
            rank=(page - 1) * limit + i + 1,
            user_id=user.id,
            full_name=user.full_name,
            total_points=int(pts or 0),
            total_quizzes=int(n),
            level=user.level,
            experience=user.experience,
            average_score=round_half_up(float(avg)) if avg is not None else None,
        )
        for i, (user, pts, n, avg) in enumerate(rows)
    ]
    return LeaderboardRead(
        period=period,
        start_date=start,
        leaderboard=entries,
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


def _cached(period: str, params: dict, build) -> LeaderboardRead:
    hit = leaderboard_cache.cache_get(period, params)
    if hit is not None:
        return LeaderboardRead.model_validate(hit)
    board = build()
    leaderboard_cache.cache_set(period, params, board.model_dump(mode="json"))
    return board


@router.get("/", response_model=LeaderboardRead)
def overall_leaderboard(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """All-time ranking of active players."""
    return _cached("overall", {"page": page, "limit": limit}, lambda: _overall(db, page, limit))


@router.get("/weekly", response_model=LeaderboardRead)
def weekly_leaderboard(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Points earned from quizzes since Sunday."""
    start = _start_of_week(datetime.now(timezone.utc))
    params = {"page": page, "limit": limit, "start": start.isoformat()}
    return _cached("weekly", params, lambda: _period(db, "weekly", start, page, limit))


@router.get("/monthly", response_model=LeaderboardRead)
def monthly_leaderboard(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Points earned from quizzes since the first of the month."""
    start = _start_of_month(datetime.now(timezone.utc))
    params = {"page": page, "limit": limit, "start": start.isoformat()}
    return _cached("monthly", params, lambda: _period(db, "monthly", start, page, limit))


@router.get("/rank", response_model=RankRead)
def my_rank(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's overall and weekly positions."""
    ahead = (
        db.query(func.count(User.id))
        .filter(
            User.is_active.is_(True),
            or_(
                User.total_points > current_user.total_points,
                and_(
                    User.total_points == current_user.total_points,
                    User.total_quizzes > current_user.total_quizzes,
                ),
            ),
        )
        .scalar()
    ) or 0

    start = _start_of_week(datetime.now(timezone.utc))
    weekly = (
        db.query(
            Attempt.user_id,
            func.sum(Attempt.points_earned).label("points"),
            func.count(Attempt.id).label("quizzes"),
        )
        .join(User, User.id == Attempt.user_id)
        .filter(_in_period(start))
        .group_by(Attempt.user_id)
        .all()
    )
    # same ordering as the weekly board: points, then quizzes taken
    standings = {uid: (int(p or 0), int(n)) for uid, p, n in weekly}
    mine = standings.get(current_user.id, (0, 0))
    weekly_ahead = sum(1 for score in standings.values() if score > mine)

    return RankRead(
        overall_rank=ahead + 1,
        weekly_rank=weekly_ahead + 1,
        weekly_points=mine[0],
        total_points=current_user.total_points,
    )

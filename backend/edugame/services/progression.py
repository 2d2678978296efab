"""Progression updater: cumulative stats, level and streak.

``level`` has exactly one source of truth, ``level_for(experience)``.
Every function here returns a fresh ``UserStats``; inputs are never mutated.
"""

from __future__ import annotations

from datetime import date

from edugame.schemas.attempt import GradedAttempt
from edugame.schemas.progress import ProgressionResult, UserStats

LEVEL_XP = 1000


def level_for(experience: int) -> int:
    return experience // LEVEL_XP + 1


def experience_to_next_level(experience: int) -> int:
    return level_for(experience) * LEVEL_XP - experience


def apply_attempt(stats: UserStats, graded: GradedAttempt) -> ProgressionResult:
    """Fold one graded attempt into the running stats.

    Points and experience accrue 1:1 from the attempt's raw points.
    """
    experience = stats.experience + graded.raw_points
    updated = stats.model_copy(
        update={
            "total_quizzes": stats.total_quizzes + 1,
            "total_points": stats.total_points + graded.raw_points,
            "experience": experience,
            "level": level_for(experience),
        }
    )
    return ProgressionResult(stats=updated, previous_level=stats.level, new_level=updated.level)


def apply_rewards(stats: UserStats, points: int, experience: int) -> ProgressionResult:
    """Add achievement rewards; level is re-derived, never set directly."""
    new_experience = stats.experience + experience
    updated = stats.model_copy(
        update={
            "total_points": stats.total_points + points,
            "experience": new_experience,
            "level": level_for(new_experience),
        }
    )
    return ProgressionResult(stats=updated, previous_level=stats.level, new_level=updated.level)


def update_streak(stats: UserStats, last_activity: date | None, today: date) -> UserStats:
    """Count consecutive active days.

    Same day keeps the streak, the next day extends it, any gap restarts at 1.
    """
    if last_activity == today and stats.current_streak > 0:
        return stats

    if last_activity is not None and (today - last_activity).days == 1:
        current = stats.current_streak + 1
    else:
        current = 1

    return stats.model_copy(
        update={
            "current_streak": current,
            "longest_streak": max(stats.longest_streak, current),
        }
    )

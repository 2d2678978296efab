"""Achievement evaluator.

Each criterion variant maps to one rule in ``_RULES``; adding a variant to
the criterion union without a rule fails at import time. Evaluation is pure:
it reports what would unlock and the reward delta, and the caller persists.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

from edugame.schemas.achievement import (
    CRITERION_MODELS,
    AchievementDefinition,
    AchievementProgress,
    CategoryMasteryCriterion,
    Criterion,
    EvaluationContext,
    EvaluationResult,
    LevelReachedCriterion,
    PerfectScoreCriterion,
    PointsEarnedCriterion,
    PointsMilestoneCriterion,
    QuizCountCriterion,
    QuizMasterCriterion,
    ScoreAchievedCriterion,
    SpeedDemonCriterion,
    StatsDelta,
    StreakDaysCriterion,
    StreakMasterCriterion,
    UnknownCriterion,
)
from edugame.schemas.attempt import GradedAttempt
from edugame.schemas.progress import UserStats
from edugame.schemas.quiz import ALL_CATEGORIES
from edugame.services.grading import round_half_up
from edugame.services.progression import apply_rewards

logger = logging.getLogger(__name__)

MAX_LEVEL_PASSES = 1
SPEED_DEMON_RATIO = 0.5
RECENT_LIMIT = 5

Rule = Callable[[Any, UserStats, Sequence[GradedAttempt], EvaluationContext], bool]


# ── Rules ─────────────────────────────────────────────────────────────────────


def _quiz_count(c: QuizCountCriterion, stats, history, ctx) -> bool:
    return stats.total_quizzes >= c.value


def _points(c: PointsEarnedCriterion | PointsMilestoneCriterion, stats, history, ctx) -> bool:
    return stats.total_points >= c.value


def _streak(c: StreakDaysCriterion | StreakMasterCriterion, stats, history, ctx) -> bool:
    return stats.current_streak >= c.value


def _level_reached(c: LevelReachedCriterion, stats, history, ctx) -> bool:
    return stats.level >= c.value


def _score_achieved(c: ScoreAchievedCriterion, stats, history, ctx) -> bool:
    attempts = history
    if c.difficulty is not None:
        attempts = [a for a in history if a.difficulty == c.difficulty]
    return any(a.percentage >= c.value for a in attempts)


def _category_mastery(c: CategoryMasteryCriterion, stats, history, ctx) -> bool:
    return sum(1 for a in history if a.category == c.category) >= c.value


def _perfect_score(c: PerfectScoreCriterion, stats, history, ctx) -> bool:
    return any(a.percentage == 100 for a in history)


def _speed_demon(c: SpeedDemonCriterion, stats, history, ctx) -> bool:
    latest = ctx.latest_attempt
    if latest is None or latest.time_limit_minutes <= 0:
        return False
    return latest.time_spent_seconds / (latest.time_limit_minutes * 60) <= SPEED_DEMON_RATIO


def _quiz_master(c: QuizMasterCriterion, stats, history, ctx) -> bool:
    attempted = {a.category for a in history}
    return all(category in attempted for category in ALL_CATEGORIES)


def _unknown(c: UnknownCriterion, stats, history, ctx) -> bool:
    logger.warning("Unknown achievement criterion type: %s", c.type)
    return False


_RULES: dict[type, Rule] = {
    QuizCountCriterion: _quiz_count,
    PointsEarnedCriterion: _points,
    StreakDaysCriterion: _streak,
    LevelReachedCriterion: _level_reached,
    ScoreAchievedCriterion: _score_achieved,
    CategoryMasteryCriterion: _category_mastery,
    PerfectScoreCriterion: _perfect_score,
    SpeedDemonCriterion: _speed_demon,
    QuizMasterCriterion: _quiz_master,
    StreakMasterCriterion: _streak,
    PointsMilestoneCriterion: _points,
    UnknownCriterion: _unknown,
}

_missing = [m.__name__ for m in CRITERION_MODELS if m not in _RULES]
if _missing:
    raise RuntimeError(f"No achievement rule for criteria: {', '.join(_missing)}")


def criterion_met(
    criterion: Criterion,
    stats: UserStats,
    history: Sequence[GradedAttempt],
    context: EvaluationContext | None = None,
) -> bool:
    rule = _RULES[type(criterion)]
    return rule(criterion, stats, history, context or EvaluationContext())


# ── Evaluation ────────────────────────────────────────────────────────────────


def _eligible(
    entry: AchievementDefinition,
    already_unlocked: Iterable[str],
    earned_counts: Mapping[str, int],
) -> bool:
    if not entry.is_active:
        return False
    if entry.max_earned > 1:
        return earned_counts.get(entry.id, 0) < entry.max_earned
    return entry.id not in already_unlocked


def evaluate(
    catalog: Sequence[AchievementDefinition],
    already_unlocked: set[str] | frozenset[str],
    stats: UserStats,
    history: Sequence[GradedAttempt],
    context: EvaluationContext | None = None,
    earned_counts: Mapping[str, int] | None = None,
    max_level_passes: int = MAX_LEVEL_PASSES,
) -> EvaluationResult:
    """Work out which catalog entries the user newly qualifies for.

    ``stats`` are the user's stats *after* the latest attempt was applied.
    Once rewards are added, a level-up triggers at most ``max_level_passes``
    further passes over ``level_reached`` entries against the projected level.

    Calling twice with the same ``already_unlocked`` returns the same unlocks
    again; callers must commit the first result before evaluating again.
    """
    ctx = context or EvaluationContext()
    counts = earned_counts or {}

    newly: list[AchievementDefinition] = []
    taken: set[str] = set()
    points = experience = 0

    def _run_pass(entries: Iterable[AchievementDefinition], against: UserStats) -> None:
        nonlocal points, experience
        for entry in entries:
            if entry.id in taken or not _eligible(entry, already_unlocked, counts):
                continue
            if criterion_met(entry.criterion, against, history, ctx):
                logger.info("Achievement unlocked: %s", entry.name)
                newly.append(entry)
                taken.add(entry.id)
                points += entry.reward_points
                experience += entry.reward_experience

    _run_pass(catalog, stats)
    passes = 1
    projected = apply_rewards(stats, points, experience).stats

    level_entries = [e for e in catalog if isinstance(e.criterion, LevelReachedCriterion)]
    level_before = stats.level
    while passes <= max_level_passes and projected.level > level_before:
        level_before = projected.level
        _run_pass(level_entries, projected)
        passes += 1
        projected = apply_rewards(stats, points, experience).stats

    if projected.level > level_before:
        logger.warning(
            "Stopped level re-evaluation after %d passes at level %d", passes, projected.level
        )

    return EvaluationResult(
        newly_unlocked=newly,
        stats_delta=StatsDelta(points=points, experience=experience),
        projected_stats=projected,
        passes=passes,
    )


# ── Progress ──────────────────────────────────────────────────────────────────


def _category_count(c: CategoryMasteryCriterion, stats: UserStats, history: Sequence[GradedAttempt]) -> float:
    return sum(1 for a in history if a.category == c.category)


_PROGRESS: dict[type, Callable[[Any, UserStats, Sequence[GradedAttempt]], float]] = {
    QuizCountCriterion: lambda c, stats, history: stats.total_quizzes,
    PointsEarnedCriterion: lambda c, stats, history: stats.total_points,
    StreakDaysCriterion: lambda c, stats, history: stats.current_streak,
    LevelReachedCriterion: lambda c, stats, history: stats.level,
    CategoryMasteryCriterion: _category_count,
}


def progress(
    catalog: Sequence[AchievementDefinition],
    already_unlocked: set[str] | frozenset[str],
    stats: UserStats,
    history: Sequence[GradedAttempt],
) -> list[AchievementProgress]:
    """Progress towards every catalog entry.

    Criteria without a countable measure report 0 of 1 until unlocked.
    """
    rows: list[AchievementProgress] = []
    for entry in catalog:
        measure = _PROGRESS.get(type(entry.criterion))
        if measure is not None:
            current = float(measure(entry.criterion, stats, history))
            maximum = float(entry.criterion.value)
        else:
            current, maximum = 0.0, 1.0

        unlocked = entry.id in already_unlocked
        if unlocked:
            current = max(current, maximum)
            pct = 100
        else:
            pct = min(100, round_half_up(current / maximum * 100))

        rows.append(
            AchievementProgress(
                achievement_id=entry.id,
                name=entry.name,
                is_unlocked=unlocked,
                current_progress=current,
                max_progress=maximum,
                progress_percentage=pct,
            )
        )
    return rows


T = TypeVar("T")


def recent_unlocks(unlocked: Iterable[T], limit: int = RECENT_LIMIT) -> list[T]:
    """Most recently earned first. Items need an ``earned_at`` attribute."""
    return sorted(unlocked, key=lambda u: u.earned_at, reverse=True)[:limit]

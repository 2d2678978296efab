"""Insight & recommendation summariser.

Everything here is read-only over attempt history (oldest first) that the
caller has already loaded; nothing touches the database.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from edugame.schemas.attempt import GradedAttempt
from edugame.schemas.insight import (
    AreaPerformance,
    Confidence,
    Consistency,
    InsightCard,
    InsightSummary,
    Prediction,
    QuizCandidate,
    Recommendation,
    SuggestedAction,
    Trend,
)
from edugame.schemas.progress import CategoryBreakdown, DailyProgress
from edugame.schemas.quiz import Category, Difficulty
from edugame.services.grading import round_half_up

logger = logging.getLogger(__name__)

TREND_WINDOW = 5
TREND_THRESHOLD = 5
WEAK_BELOW = 70
STRONG_FROM = 85
MIN_AREA_ATTEMPTS = 2
STREAK_CELEBRATE_DAYS = 7


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


# ── Summary ───────────────────────────────────────────────────────────────────


def _trend(scores: Sequence[int]) -> Trend:
    recent = scores[-TREND_WINDOW:]
    older = scores[-2 * TREND_WINDOW:-TREND_WINDOW]
    recent_avg = _mean(recent)
    older_avg = _mean(older) if older else recent_avg
    if recent_avg > older_avg + TREND_THRESHOLD:
        return Trend.IMPROVING
    if recent_avg < older_avg - TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def _consistency(scores: Sequence[int]) -> Consistency:
    spread = statistics.pstdev(scores)
    if spread < 15:
        return Consistency.HIGH
    if spread < 25:
        return Consistency.MEDIUM
    return Consistency.LOW


def _by_category(history: Sequence[GradedAttempt]) -> dict[Category, list[int]]:
    by_category: dict[Category, list[int]] = defaultdict(list)
    for attempt in history:
        by_category[Category(attempt.category)].append(attempt.percentage)
    return by_category


def weak_areas(history: Sequence[GradedAttempt]) -> list[AreaPerformance]:
    by_category = _by_category(history)
    weak = [
        (category, _mean(scores), len(scores))
        for category, scores in by_category.items()
        if _mean(scores) < WEAK_BELOW and len(scores) >= MIN_AREA_ATTEMPTS
    ]
    weak.sort(key=lambda row: row[1])
    return [
        AreaPerformance(category=c, average_score=round_half_up(avg), attempts=n)
        for c, avg, n in weak
    ]


def strong_areas(history: Sequence[GradedAttempt]) -> list[AreaPerformance]:
    by_category = _by_category(history)
    strong = [
        (category, _mean(scores), len(scores))
        for category, scores in by_category.items()
        if _mean(scores) >= STRONG_FROM and len(scores) >= MIN_AREA_ATTEMPTS
    ]
    strong.sort(key=lambda row: row[1], reverse=True)
    return [
        AreaPerformance(category=c, average_score=round_half_up(avg), attempts=n)
        for c, avg, n in strong
    ]


def summarize(history: Sequence[GradedAttempt]) -> InsightSummary:
    """Average, trend, consistency and weak / strong categories.

    Empty history gives the default summary (0, stable, low).
    """
    if not history:
        return InsightSummary()

    scores = [a.percentage for a in history]
    return InsightSummary(
        average_score=round_half_up(_mean(scores)),
        total_attempts=len(scores),
        improvement_trend=_trend(scores),
        consistency=_consistency(scores),
        best_score=max(scores),
        worst_score=min(scores),
        weak_areas=weak_areas(history),
        strong_areas=strong_areas(history),
    )


def recommended_difficulty(average_score: float) -> Difficulty:
    if average_score >= 85:
        return Difficulty.ADVANCED
    if average_score >= 70:
        return Difficulty.INTERMEDIATE
    return Difficulty.BEGINNER


# ── Breakdowns ────────────────────────────────────────────────────────────────


def _breakdown(history: Iterable[GradedAttempt], key) -> dict[str, CategoryBreakdown]:
    buckets: dict[str, list[GradedAttempt]] = defaultdict(list)
    for attempt in history:
        buckets[key(attempt)].append(attempt)
    return {
        name: CategoryBreakdown(
            attempts=len(attempts),
            average_score=round_half_up(_mean([a.percentage for a in attempts])),
            total_points=sum(a.raw_points for a in attempts),
        )
        for name, attempts in buckets.items()
    }


def category_breakdown(history: Iterable[GradedAttempt]) -> dict[str, CategoryBreakdown]:
    return _breakdown(history, lambda a: Category(a.category).value)


def difficulty_breakdown(history: Iterable[GradedAttempt]) -> dict[str, CategoryBreakdown]:
    return _breakdown(history, lambda a: Difficulty(a.difficulty).value)


def daily_progress(history: Iterable[GradedAttempt], today: date, days: int = 7) -> list[DailyProgress]:
    """One row per day for the last ``days`` days, oldest first, gaps included."""
    first = today - timedelta(days=days - 1)
    by_day: dict[date, list[GradedAttempt]] = defaultdict(list)
    for attempt in history:
        if attempt.submitted_at is None:
            continue
        day = attempt.submitted_at.date()
        if first <= day <= today:
            by_day[day].append(attempt)

    rows = []
    for offset in range(days):
        day = first + timedelta(days=offset)
        attempts = by_day.get(day, [])
        rows.append(
            DailyProgress(
                day=day.isoformat(),
                attempts=len(attempts),
                average_score=round_half_up(_mean([a.percentage for a in attempts])) if attempts else 0,
                total_points=sum(a.raw_points for a in attempts),
            )
        )
    return rows


# ── Cards & actions ───────────────────────────────────────────────────────────


def learning_insights(summary: InsightSummary, current_streak: int) -> list[InsightCard]:
    cards: list[InsightCard] = []

    if summary.improvement_trend == Trend.IMPROVING:
        cards.append(InsightCard(
            type="positive",
            title="Great Progress!",
            message="Your recent scores show improvement. Keep up the excellent work!",
            icon="📈",
        ))
    elif summary.improvement_trend == Trend.DECLINING:
        cards.append(InsightCard(
            type="warning",
            title="Focus Needed",
            message="Your recent performance has declined. Consider reviewing easier topics first.",
            icon="⚠️",
        ))

    if summary.consistency == Consistency.HIGH:
        cards.append(InsightCard(
            type="positive",
            title="Consistent Performer",
            message="You maintain steady performance across quizzes. This shows good understanding!",
            icon="🎯",
        ))

    if summary.weak_areas:
        areas = ", ".join(Category(a.category).value for a in summary.weak_areas)
        cards.append(InsightCard(
            type="suggestion",
            title="Focus Areas",
            message=f"Consider practicing more in: {areas}",
            icon="🎓",
        ))

    if current_streak >= STREAK_CELEBRATE_DAYS:
        cards.append(InsightCard(
            type="positive",
            title="Streak Master!",
            message=f"Amazing! You've maintained a {current_streak}-day learning streak!",
            icon="🔥",
        ))

    return cards


def suggested_actions(summary: InsightSummary, current_streak: int) -> list[SuggestedAction]:
    actions: list[SuggestedAction] = []
    if summary.weak_areas:
        focus = Category(summary.weak_areas[0].category).value
        actions.append(SuggestedAction(
            type="focus",
            message=f"Focus on {focus} to improve your weak areas",
            priority="high",
        ))
    if summary.improvement_trend == Trend.DECLINING:
        actions.append(SuggestedAction(
            type="review", message="Review easier topics to rebuild confidence", priority="medium"
        ))
    if current_streak < 3:
        actions.append(SuggestedAction(
            type="consistency", message="Try to maintain a daily learning streak", priority="medium"
        ))
    return actions


# ── Prediction ────────────────────────────────────────────────────────────────


def predict_score(
    history: Sequence[GradedAttempt],
    category: Category,
    difficulty: Difficulty,
) -> Prediction | None:
    """Expected score on a quiz of the given category and difficulty.

    Returns None when there is no history to predict from.
    """
    if not history:
        return None

    similar = [
        a.percentage
        for a in history
        if Category(a.category) == Category(category) and Difficulty(a.difficulty) == Difficulty(difficulty)
    ]
    if not similar:
        return Prediction(
            predicted_score=round_half_up(_mean([a.percentage for a in history])),
            confidence=Confidence.LOW,
            reasoning="Based on overall performance",
        )

    n = len(similar)
    if n >= 3:
        confidence = Confidence.HIGH
    elif n == 2:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW
    return Prediction(
        predicted_score=round_half_up(_mean(similar)),
        confidence=confidence,
        reasoning=f"Based on {n} similar quiz{'zes' if n > 1 else ''}",
    )


# ── Recommendations ───────────────────────────────────────────────────────────


def recommend_quizzes(
    candidates: Sequence[QuizCandidate],
    summary: InsightSummary,
    preferred_categories: Iterable[str] = (),
    completed_ids: Iterable[str] = (),
    limit: int = 5,
) -> list[Recommendation]:
    """Pick up to ``limit`` quizzes the user has not completed yet.

    Slots go roughly 40% to weak areas at the recommended difficulty, 30% to
    preferred subjects, 20% to strong areas at advanced level, and the rest
    to the most popular remaining quizzes.
    """
    completed = set(completed_ids)
    target = recommended_difficulty(summary.average_score)
    weak = {Category(a.category) for a in summary.weak_areas}
    strong = {Category(a.category) for a in summary.strong_areas}
    preferred = {Category(c) for c in preferred_categories}

    open_quizzes = [c for c in candidates if c.id not in completed]
    picked: list[Recommendation] = []
    seen: set[str] = set()

    def _take(pool: Iterable[QuizCandidate], count: int, reason: str, priority: str) -> None:
        taken = 0
        for quiz in pool:
            if taken >= count:
                break
            if quiz.id in seen:
                continue
            seen.add(quiz.id)
            picked.append(Recommendation(quiz_id=quiz.id, reason=reason, priority=priority))
            taken += 1

    _take(
        (q for q in open_quizzes if q.category in weak and q.difficulty == target),
        math.ceil(limit * 0.4), "Improve weak area", "high",
    )
    if preferred:
        _take(
            (q for q in open_quizzes if q.category in preferred and q.difficulty == target),
            math.ceil(limit * 0.3), "Based on your interests", "medium",
        )
    _take(
        (q for q in open_quizzes if q.category in strong and q.difficulty == Difficulty.ADVANCED),
        math.ceil(limit * 0.2), "Master your strong areas", "low",
    )

    remaining = limit - len(picked)
    if remaining > 0:
        popular = sorted(open_quizzes, key=lambda q: q.popularity, reverse=True)
        _take(popular, remaining, "Popular among learners", "low")

    logger.debug("Recommended %d of %d open quizzes", len(picked), len(open_quizzes))
    return picked[:limit]

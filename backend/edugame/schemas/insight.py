"""Insight / recommendation schemas."""

from enum import Enum

from pydantic import BaseModel

from edugame.schemas.quiz import Category, Difficulty, QuizSummaryRead


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class Consistency(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AreaPerformance(BaseModel):
    category: Category
    average_score: int
    attempts: int


class InsightSummary(BaseModel):
    average_score: int = 0
    total_attempts: int = 0
    improvement_trend: Trend = Trend.STABLE
    consistency: Consistency = Consistency.LOW
    best_score: int | None = None
    worst_score: int | None = None
    weak_areas: list[AreaPerformance] = []
    strong_areas: list[AreaPerformance] = []


class InsightCard(BaseModel):
    type: str  # positive | warning | suggestion
    title: str
    message: str
    icon: str = ""


class Prediction(BaseModel):
    predicted_score: int
    confidence: Confidence
    reasoning: str


class QuizCandidate(BaseModel):
    """What the recommender needs to know about a quiz."""

    id: str
    category: Category
    difficulty: Difficulty
    popularity: int = 0


class Recommendation(BaseModel):
    quiz_id: str
    reason: str
    priority: str  # high | medium | low


class RecommendedQuiz(BaseModel):
    quiz: QuizSummaryRead
    reason: str
    priority: str


class RecommendationsRead(BaseModel):
    """GET /api/insights/recommendations"""

    recommendations: list[RecommendedQuiz]
    summary: InsightSummary
    recommended_difficulty: Difficulty


class SuggestedAction(BaseModel):
    type: str
    message: str
    priority: str


class LearningPathRead(BaseModel):
    """GET /api/insights/learning-path"""

    current_level: int
    next_milestone: int
    progress: float
    recommendations: list[RecommendedQuiz]
    insights: list[InsightCard]
    suggested_actions: list[SuggestedAction]

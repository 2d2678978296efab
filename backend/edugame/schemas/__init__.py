"""Pydantic schemas: re-exported for convenience."""

from edugame.schemas.common import ErrorResponse, Pagination  # noqa: F401
from edugame.schemas.user import (  # noqa: F401
    AuthResponse,
    UserCreate,
    UserLogin,
    UserRead,
)
from edugame.schemas.quiz import (  # noqa: F401
    Category,
    Difficulty,
    QuizCreate,
    QuizDefinition,
    QuizRead,
    QuestionDefinition,
)
from edugame.schemas.attempt import (  # noqa: F401
    AnswerSubmission,
    AttemptSubmission,
    GradedAttempt,
)
from edugame.schemas.progress import (  # noqa: F401
    ProgressionResult,
    UserStats,
)
from edugame.schemas.achievement import (  # noqa: F401
    AchievementDefinition,
    Criterion,
    EvaluationResult,
    parse_criterion,
)
from edugame.schemas.insight import InsightSummary  # noqa: F401

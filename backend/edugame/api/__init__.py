"""API route package: imports all routers for main.py."""

from edugame.api.health import router as health_router  # noqa: F401
from edugame.api.users import router as users_router  # noqa: F401
from edugame.api.quizzes import router as quizzes_router  # noqa: F401
from edugame.api.achievements import router as achievements_router  # noqa: F401
from edugame.api.leaderboard import router as leaderboard_router  # noqa: F401
from edugame.api.insights import router as insights_router  # noqa: F401
from edugame.api.contact import router as contact_router  # noqa: F401

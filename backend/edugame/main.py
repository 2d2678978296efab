"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from edugame.config import settings
from edugame.api import (
    achievements_router,
    contact_router,
    health_router,
    insights_router,
    leaderboard_router,
    quizzes_router,
    users_router,
)
from edugame.core.exceptions import register_exception_handlers
from edugame.db import models  # noqa: F401  (registers tables on Base.metadata)
from edugame.db.session import Base, get_engine

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 EduGame backend starting (env=%s)…", settings.ENV)
    Base.metadata.create_all(bind=get_engine())
    yield
    logger.info("✅ EduGame backend shut down")


app = FastAPI(
    title="EduGame API",
    description="Gamified quizzes: grading, progression, achievements and insights",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(achievements_router, prefix="/api/achievements", tags=["Achievements"])
app.include_router(leaderboard_router, prefix="/api/leaderboard", tags=["Leaderboard"])
app.include_router(insights_router, prefix="/api/insights", tags=["Insights"])
app.include_router(contact_router, prefix="/api/contact", tags=["Contact"])

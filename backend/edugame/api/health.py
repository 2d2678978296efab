"""Liveness endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "healthy", "service": "edugame-backend"}


@router.get("/")
async def root():
    return {
        "name": "EduGame API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }

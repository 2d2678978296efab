"""User & authentication schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator

from edugame.schemas.quiz import Category, Difficulty


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """POST /api/users/register"""

    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1, max_length=255)
    role: Role = Role.STUDENT

    @field_validator("role")
    @classmethod
    def _no_self_service_admin(cls, v: Role) -> Role:
        if v == Role.ADMIN:
            raise ValueError("admin accounts cannot be self-registered")
        return v


class UserLogin(BaseModel):
    """POST /api/users/login"""

    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """PATCH /api/users/me: update own profile and preferences."""

    full_name: str | None = None
    preferred_difficulty: Difficulty | None = None
    preferred_subjects: list[Category] | None = None


class UserRead(BaseModel):
    """User returned from API: never exposes password."""

    id: uuid.UUID
    email: str
    full_name: str
    role: Role
    is_active: bool
    total_points: int
    total_quizzes: int
    experience: int
    level: int
    current_streak: int
    longest_streak: int
    preferred_difficulty: Difficulty
    preferred_subjects: list[Category] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Combined auth response: token + user profile."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead

"""Contact form schemas."""

from pydantic import BaseModel, EmailStr, Field


class ContactMessage(BaseModel):
    """POST /api/contact"""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=10, max_length=2000)


class ContactAck(BaseModel):
    success: bool = True
    message: str
    task_id: str | None = None

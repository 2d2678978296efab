"""Domain exceptions and their HTTP translation."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from edugame.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class EduGameException(Exception):
    """Base exception for EduGame domain errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class InvalidQuizError(EduGameException):
    """Quiz cannot be graded: no questions, or a malformed question."""

    def __init__(self, message: str = "Quiz is not gradable", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_QUIZ",
            details=details,
        )


class InvalidCriterionError(EduGameException):
    """Achievement criterion is missing a field its type requires."""

    def __init__(self, message: str = "Invalid achievement criterion", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_CRITERION",
            details=details,
        )


class SubmissionConflictError(EduGameException):
    """Another submission for the same user committed the same unlock first."""

    def __init__(self, message: str = "Concurrent submission, please retry", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="SUBMISSION_CONFLICT",
            details=details,
        )


async def edugame_exception_handler(request: Request, exc: EduGameException) -> JSONResponse:
    """Render an ``EduGameException`` with the standard error envelope."""
    logger.warning(
        "%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message
    )
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details or None)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduGameException, edugame_exception_handler)  # type: ignore[arg-type]

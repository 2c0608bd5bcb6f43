"""
Custom exception hierarchy for the Study Coach API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class StudyCoachError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def headers(self) -> dict[str, str] | None:
        return None


class NotAuthenticatedError(StudyCoachError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "Could not validate credentials."):
        super().__init__(message=message)

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class InvalidCredentialsError(StudyCoachError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__(message="Incorrect email or password.")


class EmailAlreadyRegisteredError(StudyCoachError):
    http_status = status.HTTP_409_CONFLICT
    code = "EMAIL_ALREADY_REGISTERED"

    def __init__(self, email: str):
        super().__init__(
            message=f"An account for {email} already exists.",
            details={"email": email},
        )


class TaskNotFoundError(StudyCoachError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: int):
        super().__init__(
            message=f"Task {task_id} not found.",
            details={"task_id": task_id},
        )


class TaskCycleError(StudyCoachError):
    http_status = status.HTTP_409_CONFLICT
    code = "TASK_CYCLE"

    def __init__(self, task_ids: list[int]):
        super().__init__(
            message="Task parent chain forms a cycle.",
            details={"task_ids": sorted(task_ids)},
        )


class UnknownCredoItemError(StudyCoachError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "UNKNOWN_CREDO_ITEM"

    def __init__(self, credo_ids: list[str]):
        super().__init__(
            message=f"Unknown credo item(s): {', '.join(credo_ids)}.",
            details={"credo_ids": credo_ids},
        )


class InvalidDateRangeError(StudyCoachError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date):
        super().__init__(
            message=f"Range start {start} is after range end {end}.",
            details={"from": str(start), "to": str(end)},
        )


class ReportNotFoundError(StudyCoachError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "REPORT_NOT_FOUND"

    def __init__(self, week_start: date):
        super().__init__(
            message=f"No weekly report generated for the week of {week_start}.",
            details={"week_start": str(week_start)},
        )


class NoteNotFoundError(StudyCoachError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOTE_NOT_FOUND"

    def __init__(self, note_id: int):
        super().__init__(
            message=f"Note {note_id} not found.",
            details={"note_id": note_id},
        )


class AIGenerationFailedError(StudyCoachError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "AI_GENERATION_FAILED"

    def __init__(self, message: str = "AI generation failed. Please try again."):
        super().__init__(message=message)


class RateLimitedError(StudyCoachError):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, route: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            message="Too many requests. Please try again later.",
            details={"route": route, "retry_after": retry_after},
        )

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class LLMError(Exception):
    """LLM provider call failed or returned an unusable payload."""


class LLMNotConfiguredError(LLMError):
    """No API key configured for the LLM provider."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def study_coach_exception_handler(request: Request, exc: StudyCoachError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=exc.headers(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again.",
        },
    )

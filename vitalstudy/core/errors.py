"""
Custom exception hierarchy for vitalstudy.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

The analytics core never catches store failures; they surface here as
DATA_ACCESS_ERROR through `sqlalchemy_exception_handler`.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class VitalStudyException(Exception):
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


class GoalNotFoundError(VitalStudyException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "GOAL_NOT_FOUND"

    def __init__(self, goal_id: int):
        super().__init__(
            message=f"Goal {goal_id} not found.",
            details={"goal_id": goal_id},
        )


class UnsupportedMetricError(VitalStudyException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "UNSUPPORTED_METRIC"

    def __init__(self, metric: str, supported: list[str]):
        super().__init__(
            message=f"Metric '{metric}' is not supported.",
            details={"metric": metric, "supported": supported},
        )


class UnsupportedActivityError(VitalStudyException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "UNSUPPORTED_ACTIVITY"

    def __init__(self, activity_type: str, supported: list[str]):
        super().__init__(
            message=f"Activity type '{activity_type}' is not supported.",
            details={"activity_type": activity_type, "supported": supported},
        )


class InvalidTimeRangeError(VitalStudyException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_TIME_RANGE"

    def __init__(self, time_range: int, max_days: int):
        super().__init__(
            message=f"time_range must be between 1 and {max_days} days. Received {time_range}.",
            details={"time_range": time_range, "max_days": max_days},
        )


class DataAccessError(VitalStudyException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DATA_ACCESS_ERROR"

    def __init__(self, message: str = "The data store could not complete the request."):
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def vitalstudy_exception_handler(request: Request, exc: VitalStudyException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
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


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Data store failure on %s %s", request.method, request.url.path)
    err = DataAccessError()
    return JSONResponse(status_code=err.http_status, content=err.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )

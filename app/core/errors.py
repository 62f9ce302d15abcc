"""
Custom exception hierarchy for the baseline engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. The human-readable
text travels in `error`.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BaselineEngineError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class BaselineSelectionError(BaselineEngineError):
    """The set of users to recompute could not be read. Aborts the whole run."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "BASELINE_SELECTION_FAILED"

    def __init__(self, message: str):
        super().__init__(message=f"Could not select users for recalculation: {message}")


class BaselineConflictError(BaselineEngineError):
    """Another run replaced the user's baseline while this one was computing."""
    http_status = status.HTTP_409_CONFLICT
    code = "BASELINE_CONFLICT"

    def __init__(
        self,
        user_id: str,
        expected: Optional[datetime],
        found: Optional[datetime],
    ):
        super().__init__(
            message=f"Baseline for user {user_id} changed during recalculation.",
            details={
                "user_id": user_id,
                "expected_updated_at": expected.isoformat() if expected else None,
                "found_updated_at": found.isoformat() if found else None,
            },
        )


class BaselineNotFoundError(BaselineEngineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "BASELINE_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            message=f"No baseline has been computed for user {user_id}.",
            details={"user_id": user_id},
        )


class ObservationNotFoundError(BaselineEngineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "OBSERVATION_NOT_FOUND"

    def __init__(self, user_id: str, day: Optional[date] = None):
        where = f" on {day}" if day else ""
        details: dict[str, Any] = {"user_id": user_id}
        if day:
            details["day"] = str(day)
        super().__init__(
            message=f"No daily summary found for user {user_id}{where}.",
            details=details,
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def engine_exception_handler(request: Request, exc: BaselineEngineError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
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
            "error": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "error": "An unexpected error occurred.",
        },
    )

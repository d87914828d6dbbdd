"""Translate domain errors into HTTP responses at the router edge."""

from __future__ import annotations

from fastapi import HTTPException, status

from achievement_service.core.errors import (
    AchievementServiceError,
    ConflictError,
    DataUnavailableError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)

# Clients should wait at least this long before retrying a 503.
RETRY_AFTER_SECONDS = 1


def to_http(e: AchievementServiceError) -> HTTPException:
    if isinstance(e, ValidationFailedError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"field": e.field, "message": e.message},
        )
    if isinstance(e, ForbiddenError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, DataUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activity data temporarily unavailable, retry later",
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error",
    )

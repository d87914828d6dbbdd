"""Domain exceptions raised by the services layer.

Routers translate these into HTTP responses; services never import FastAPI.
Authentication failures are not represented here: require_user rejects
a missing or invalid bearer token with a 401 before any service runs.
"""

from __future__ import annotations


class AchievementServiceError(Exception):
    """Base class for every domain error this service raises."""


class ForbiddenError(AchievementServiceError):
    """Valid principal, but not allowed to act on the requested target."""


class NotFoundError(AchievementServiceError):
    pass


class ValidationFailedError(AchievementServiceError, ValueError):
    """Rejected input.  ``field`` names the offending attribute."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ConflictError(AchievementServiceError):
    pass


class DataUnavailableError(AchievementServiceError):
    """The backing store could not be read consistently.  Safe to retry."""

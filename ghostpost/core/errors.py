"""Error taxonomy shared by services and routers.

Services raise these with a stable, user-facing reason. The app turns them
into ``{"error": reason}`` responses with the matching status code; anything
else is treated as an internal error.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected, deliberately produced failures."""

    status_code = 500

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Unauthenticated(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class ValidationError(ServiceError):
    status_code = 400


class InvalidState(ServiceError):
    status_code = 400


class Conflict(ServiceError):
    status_code = 409


class Gone(ServiceError):
    status_code = 410


class RateLimited(ServiceError):
    status_code = 429

"""Domain errors raised by the services layer.

Each error carries the HTTP status it maps to; ``rollout_ready.main`` installs
handlers that render them as ``{"detail": message}``.
"""
from fastapi import status


class RolloutReadyError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RolloutReadyError):
    """Malformed or missing input. Raised before any write happens."""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(RolloutReadyError):
    """Missing, invalid or expired session."""
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(RolloutReadyError):
    """Authenticated, but the system role does not allow the action."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(RolloutReadyError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(RolloutReadyError):
    """Uniqueness or referential-integrity violation."""
    status_code = status.HTTP_409_CONFLICT

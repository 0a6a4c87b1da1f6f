"""
Error taxonomy for QA Tracker.

Every error carries an HTTP status and a stable code so the API layer can
render it without knowing where it was raised.
"""

from typing import Any, Dict


class QATrackerError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {"detail": self.message, "code": self.code}


class ValidationError(QATrackerError):
    """Missing or malformed input."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(QATrackerError):
    """Missing, expired or invalid credentials."""

    status_code = 401
    code = "authentication_error"


class AuthorizationError(QATrackerError):
    """The caller's role or ownership does not permit the operation."""

    status_code = 403
    code = "authorization_error"


class NotFoundError(QATrackerError):
    """A referenced entity does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidStateError(QATrackerError):
    """The entity is not in a state that allows the operation."""

    status_code = 400
    code = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    """Raised when a status transition is not permitted from the current status."""

    def __init__(self, current: str, requested: str, message: str = ""):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot transition from '{current}' to '{requested}'"
        )


class InfrastructureError(QATrackerError):
    """Database or delivery channel failure."""

    status_code = 500
    code = "infrastructure_error"

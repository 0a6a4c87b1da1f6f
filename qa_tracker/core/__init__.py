"""Cross-cutting concerns: errors, security, logging."""

from .errors import (
    AuthenticationError,
    AuthorizationError,
    InfrastructureError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    QATrackerError,
    ValidationError,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "InfrastructureError",
    "InvalidStateError",
    "InvalidTransitionError",
    "NotFoundError",
    "QATrackerError",
    "ValidationError",
]

"""Applications under test."""

from .service import ApplicationService

__all__ = ["ApplicationService"]

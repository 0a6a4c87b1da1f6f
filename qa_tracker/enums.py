"""
Canonical enums for QA Tracker.

Values are the wire representation used by the REST API, the database and the
realtime channel.
"""

from enum import Enum


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    QA = "qa"


class Severity(str, Enum):
    """Bug severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BugStatus(str, Enum):
    """Lifecycle status of a bug report."""

    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    PENDING_TEST = "pending-test"
    CLOSED = "closed"


class TesterDecision(str, Enum):
    """Verdict of the original reporter on a fix awaiting validation."""

    FIXED = "fixed"
    REGRESSION = "regression"
    NOT_FIXED = "not-fixed"


class NotificationChannel(str, Enum):
    """Delivery channels for notifications."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"

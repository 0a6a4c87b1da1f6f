"""
SQLAlchemy models for QA Tracker.
"""

from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from ..enums import BugStatus, Role, Severity, TesterDecision
from .base import Base, generate_ulid, isoformat, utc_now


def _values(enum_cls) -> list:
    return [member.value for member in enum_cls]


application_qas = Table(
    "application_qas",
    Base.metadata,
    Column(
        "application_id",
        String(26),
        ForeignKey("applications.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


testing_reminder_recipients = Table(
    "testing_reminder_recipients",
    Base.metadata,
    Column(
        "reminder_id",
        String(26),
        ForeignKey("testing_reminders.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class UserModel(Base):
    """SQLAlchemy model for admins and QA testers."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(
        Enum(*_values(Role), name="user_role", native_enum=False),
        nullable=False,
        default=Role.QA.value,
        index=True,
    )
    whatsapp_number = Column(String(32), nullable=True)

    # Notification preferences
    notify_email = Column(Boolean, nullable=False, default=True)
    notify_whatsapp = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    assigned_applications = relationship(
        "ApplicationModel",
        secondary=application_qas,
        back_populates="assigned_qas",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def summary(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary. The password hash is never included."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "whatsapp_number": self.whatsapp_number,
            "notification_preferences": {
                "email": self.notify_email,
                "whatsapp": self.notify_whatsapp,
            },
            "created_at": isoformat(self.created_at),
        }


class ApplicationModel(Base):
    """SQLAlchemy model for applications under test."""

    __tablename__ = "applications"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    version = Column(String(50), nullable=False)
    platform = Column(String(100), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    assigned_qas = relationship(
        "UserModel",
        secondary=application_qas,
        back_populates="assigned_applications",
        order_by="UserModel.name",
    )
    versions = relationship(
        "VersionHistoryModel",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    testing_reminders = relationship(
        "TestingReminderModel",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "platform": self.platform,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "platform": self.platform,
            "assigned_qas": [qa.summary() for qa in self.assigned_qas],
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class BugReportModel(Base):
    """SQLAlchemy model for bug reports.

    ``status`` always mirrors the last ``status_history`` row; both are only
    changed through :class:`qa_tracker.bugs.engine.BugStatusEngine`.
    """

    __tablename__ = "bug_reports"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    steps_to_reproduce = Column(Text, nullable=False)
    expected_behavior = Column(Text, nullable=False)
    actual_behavior = Column(Text, nullable=False)
    severity = Column(
        Enum(*_values(Severity), name="bug_severity", native_enum=False),
        nullable=False,
        index=True,
    )
    environment = Column(String(255), nullable=False)
    application_id = Column(
        String(26),
        ForeignKey("applications.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reported_by_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    screenshots = Column(JSON, nullable=False, default=list)
    console_errors = Column(Text, nullable=True)
    queries = Column(Text, nullable=True)

    status = Column(
        Enum(*_values(BugStatus), name="bug_status", native_enum=False),
        nullable=False,
        default=BugStatus.OPEN.value,
        index=True,
    )
    is_regression = Column(Boolean, nullable=False, default=False)

    # Tester decision, all three set together
    tester_decision = Column(
        Enum(*_values(TesterDecision), name="tester_decision", native_enum=False),
        nullable=True,
    )
    tester_comment = Column(Text, nullable=True)
    tester_decided_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    application = relationship("ApplicationModel")
    reported_by = relationship("UserModel")
    status_history = relationship(
        "BugStatusHistoryModel",
        back_populates="bug_report",
        cascade="all, delete-orphan",
        order_by="BugStatusHistoryModel.id",
    )
    comments = relationship(
        "BugCommentModel",
        back_populates="bug_report",
        cascade="all, delete-orphan",
        order_by="BugCommentModel.id",
    )

    __table_args__ = (
        Index("ix_bug_reports_status_severity", "status", "severity"),
        Index("ix_bug_reports_created_at", "created_at"),
    )

    def tester_decision_dict(self) -> Optional[Dict[str, Any]]:
        if self.tester_decision is None:
            return None
        return {
            "decision": self.tester_decision,
            "comment": self.tester_comment,
            "decided_at": isoformat(self.tester_decided_at),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a hydrated dictionary with application, reporter and children."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "steps_to_reproduce": self.steps_to_reproduce,
            "expected_behavior": self.expected_behavior,
            "actual_behavior": self.actual_behavior,
            "severity": self.severity,
            "environment": self.environment,
            "application": self.application.summary() if self.application else None,
            "reported_by": self.reported_by.summary() if self.reported_by else None,
            "screenshots": list(self.screenshots or []),
            "console_errors": self.console_errors,
            "queries": self.queries,
            "status": self.status,
            "status_history": [entry.to_dict() for entry in self.status_history],
            "comments": [comment.to_dict() for comment in self.comments],
            "tester_decision": self.tester_decision_dict(),
            "is_regression": self.is_regression,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class BugStatusHistoryModel(Base):
    """Append-only audit row for one status change."""

    __tablename__ = "bug_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_report_id = Column(
        String(26),
        ForeignKey("bug_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(*_values(BugStatus), name="bug_history_status", native_enum=False),
        nullable=False,
    )
    changed_by_id = Column(
        String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    changed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    bug_report = relationship("BugReportModel", back_populates="status_history")
    changed_by = relationship("UserModel")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "changed_by": (
                {"id": self.changed_by.id, "name": self.changed_by.name}
                if self.changed_by
                else None
            ),
            "changed_at": isoformat(self.changed_at),
        }


class BugCommentModel(Base):
    """Append-only comment on a bug report."""

    __tablename__ = "bug_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_report_id = Column(
        String(26),
        ForeignKey("bug_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(
        String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    bug_report = relationship("BugReportModel", back_populates="comments")
    author = relationship("UserModel")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author": (
                {"id": self.author.id, "name": self.author.name, "role": self.author.role}
                if self.author
                else None
            ),
            "text": self.text,
            "created_at": isoformat(self.created_at),
        }


class VersionHistoryModel(Base):
    """Immutable record of one application version bump."""

    __tablename__ = "version_history"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    application_id = Column(
        String(26),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version = Column(String(50), nullable=False)
    previous_version = Column(String(50), nullable=False)
    changelog = Column(Text, nullable=False)
    updated_by_id = Column(
        String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    application = relationship("ApplicationModel", back_populates="versions")
    updated_by = relationship("UserModel")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "version": self.version,
            "previous_version": self.previous_version,
            "changelog": self.changelog,
            "updated_by": self.updated_by.summary() if self.updated_by else None,
            "created_at": isoformat(self.created_at),
        }


class TestingReminderModel(Base):
    """A reminder an admin sent to an application's assigned QAs."""

    __tablename__ = "testing_reminders"
    __test__ = False  # not a pytest class

    id = Column(String(26), primary_key=True, default=generate_ulid)
    application_id = Column(
        String(26),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sent_by_id = Column(
        String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    application = relationship("ApplicationModel", back_populates="testing_reminders")
    sent_by = relationship("UserModel")
    notified_qas = relationship("UserModel", secondary=testing_reminder_recipients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "sent_by": self.sent_by.summary() if self.sent_by else None,
            "message": self.message,
            "notified_qas": [qa.summary() for qa in self.notified_qas],
            "created_at": isoformat(self.created_at),
        }

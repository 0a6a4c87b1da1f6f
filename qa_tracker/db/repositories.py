"""
Repositories for QA Tracker.

Each repository wraps one aggregate and returns hydrated models, so callers
never build joins themselves.
"""

from typing import Iterable, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, selectinload

from ..enums import Role
from .base import commit_or_raise
from .models import (
    ApplicationModel,
    BugCommentModel,
    BugReportModel,
    BugStatusHistoryModel,
    TestingReminderModel,
    UserModel,
    VersionHistoryModel,
)


class UserRepository:
    """Repository for users."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[UserModel]:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.email == email.strip().lower())
            .first()
        )

    def add(self, user: UserModel) -> UserModel:
        self.db.add(user)
        commit_or_raise(self.db)
        self.db.refresh(user)
        return user

    def save(self, user: UserModel) -> UserModel:
        commit_or_raise(self.db)
        self.db.refresh(user)
        return user

    def list_by_role(self, role: Role) -> List[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.role == role.value)
            .order_by(UserModel.name)
            .all()
        )

    def get_many(self, user_ids: Iterable[str]) -> List[UserModel]:
        user_ids = list(user_ids)
        if not user_ids:
            return []
        return self.db.query(UserModel).filter(UserModel.id.in_(user_ids)).all()

    def delete_qa(self, user: UserModel) -> int:
        """Delete a QA user, pulling it from every application first.

        Returns the number of applications the user was unassigned from.
        """
        applications = list(user.assigned_applications)
        for application in applications:
            application.assigned_qas.remove(user)
        self.db.delete(user)
        commit_or_raise(self.db)
        return len(applications)


class ApplicationRepository:
    """Repository for applications, their version history and reminders."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, application_id: str) -> Optional[ApplicationModel]:
        return (
            self.db.query(ApplicationModel)
            .options(selectinload(ApplicationModel.assigned_qas))
            .filter(ApplicationModel.id == application_id)
            .first()
        )

    def get_by_name(self, name: str) -> Optional[ApplicationModel]:
        return self.db.query(ApplicationModel).filter(ApplicationModel.name == name).first()

    def list(self) -> List[ApplicationModel]:
        return (
            self.db.query(ApplicationModel)
            .options(selectinload(ApplicationModel.assigned_qas))
            .order_by(desc(ApplicationModel.created_at))
            .all()
        )

    def list_for_qa(self, user: UserModel) -> List[ApplicationModel]:
        return (
            self.db.query(ApplicationModel)
            .options(selectinload(ApplicationModel.assigned_qas))
            .filter(ApplicationModel.assigned_qas.any(UserModel.id == user.id))
            .order_by(ApplicationModel.name)
            .all()
        )

    def add(self, application: ApplicationModel) -> ApplicationModel:
        self.db.add(application)
        commit_or_raise(self.db)
        self.db.refresh(application)
        return application

    def save(self, application: ApplicationModel) -> ApplicationModel:
        commit_or_raise(self.db)
        self.db.refresh(application)
        return application

    def delete(self, application: ApplicationModel) -> None:
        self.db.delete(application)
        commit_or_raise(self.db)

    def add_version(self, record: VersionHistoryModel) -> VersionHistoryModel:
        self.db.add(record)
        commit_or_raise(self.db)
        self.db.refresh(record)
        return record

    def list_versions(self, application_id: str) -> List[VersionHistoryModel]:
        return (
            self.db.query(VersionHistoryModel)
            .options(selectinload(VersionHistoryModel.updated_by))
            .filter(VersionHistoryModel.application_id == application_id)
            .order_by(desc(VersionHistoryModel.created_at), desc(VersionHistoryModel.id))
            .all()
        )

    def add_reminder(self, reminder: TestingReminderModel) -> TestingReminderModel:
        self.db.add(reminder)
        commit_or_raise(self.db)
        self.db.refresh(reminder)
        return reminder

    def list_reminders(self, application_id: str) -> List[TestingReminderModel]:
        return (
            self.db.query(TestingReminderModel)
            .options(
                selectinload(TestingReminderModel.sent_by),
                selectinload(TestingReminderModel.notified_qas),
            )
            .filter(TestingReminderModel.application_id == application_id)
            .order_by(desc(TestingReminderModel.created_at), desc(TestingReminderModel.id))
            .all()
        )


class BugReportRepository:
    """Repository for bug report aggregates."""

    def __init__(self, db: Session):
        self.db = db

    def _hydrated(self):
        return self.db.query(BugReportModel).options(
            selectinload(BugReportModel.application),
            selectinload(BugReportModel.reported_by),
            selectinload(BugReportModel.status_history).selectinload(
                BugStatusHistoryModel.changed_by
            ),
            selectinload(BugReportModel.comments).selectinload(BugCommentModel.author),
        )

    def get_with_relations(self, bug_id: str) -> Optional[BugReportModel]:
        """Get a bug report with application, reporter, history and comments loaded."""
        return self._hydrated().filter(BugReportModel.id == bug_id).first()

    def get_application(self, application_id: str) -> Optional[ApplicationModel]:
        return self.db.get(ApplicationModel, application_id)

    def list(
        self,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        application_id: Optional[str] = None,
        reported_by_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[BugReportModel], int]:
        """List bug reports with optional filtering, newest first.

        Returns the requested page and the total number of matches.
        """
        filters = []
        if status:
            filters.append(BugReportModel.status == status)
        if severity:
            filters.append(BugReportModel.severity == severity)
        if application_id:
            filters.append(BugReportModel.application_id == application_id)
        if reported_by_id:
            filters.append(BugReportModel.reported_by_id == reported_by_id)
        if search:
            filters.append(BugReportModel.title.ilike(f"%{search}%"))

        total = self.db.query(func.count(BugReportModel.id)).filter(*filters).scalar()
        items = (
            self._hydrated()
            .filter(*filters)
            .order_by(desc(BugReportModel.created_at), desc(BugReportModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total or 0

    def list_by_application(self, application_id: str) -> List[BugReportModel]:
        return (
            self._hydrated()
            .filter(BugReportModel.application_id == application_id)
            .order_by(desc(BugReportModel.created_at), desc(BugReportModel.id))
            .all()
        )

    def add(self, report: BugReportModel) -> BugReportModel:
        self.db.add(report)
        commit_or_raise(self.db)
        return self.get_with_relations(report.id)

    def save(self, report: BugReportModel) -> BugReportModel:
        """Persist pending changes to the aggregate in one transaction."""
        bug_id = report.id
        commit_or_raise(self.db)
        return self.get_with_relations(bug_id)

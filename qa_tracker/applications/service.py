"""
Application workflows: CRUD, version bumps and testing reminders.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog

from ..core.errors import NotFoundError, ValidationError
from ..db.models import (
    ApplicationModel,
    TestingReminderModel,
    UserModel,
    VersionHistoryModel,
)
from ..db.repositories import ApplicationRepository, UserRepository
from ..enums import Role
from ..notifications.ports import NotifierPort, notify_safely

logger = structlog.get_logger()

DEFAULT_PREVIOUS_VERSION = "0.0.0"


class ApplicationService:
    """Service for managing applications under test."""

    def __init__(
        self,
        applications: ApplicationRepository,
        users: UserRepository,
        notifier: NotifierPort,
    ):
        self.applications = applications
        self.users = users
        self.notifier = notifier

    def get(self, application_id: str) -> ApplicationModel:
        application = self.applications.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    def list(self) -> List[ApplicationModel]:
        return self.applications.list()

    def list_for_qa(self, user: UserModel) -> List[ApplicationModel]:
        return self.applications.list_for_qa(user)

    def create(self, fields: Dict[str, Any]) -> ApplicationModel:
        if self.applications.get_by_name(fields["name"]) is not None:
            raise ValidationError(f"Application '{fields['name']}' already exists")

        application = ApplicationModel(
            name=fields["name"],
            description=fields.get("description") or "",
            version=fields["version"],
            platform=fields["platform"],
        )
        application.assigned_qas = self._resolve_qas(fields.get("assigned_qas") or [])
        application = self.applications.add(application)
        logger.info("application_created", application_id=application.id, name=application.name)
        return application

    def update(self, application: ApplicationModel, changes: Dict[str, Any]) -> ApplicationModel:
        """Apply a partial update. ``changes`` holds only the fields to change."""
        name = changes.get("name")
        if name and name != application.name:
            existing = self.applications.get_by_name(name)
            if existing is not None and existing.id != application.id:
                raise ValidationError(f"Application '{name}' already exists")

        assigned = None
        if changes.get("assigned_qas") is not None:
            assigned = self._resolve_qas(changes["assigned_qas"])

        for field in ("name", "description", "version", "platform"):
            if changes.get(field) is not None:
                setattr(application, field, changes[field])
        if assigned is not None:
            application.assigned_qas = assigned

        application = self.applications.save(application)
        logger.info(
            "application_updated",
            application_id=application.id,
            fields=sorted(key for key, value in changes.items() if value is not None),
        )
        return application

    def delete(self, application: ApplicationModel) -> None:
        application_id = application.id
        self.applications.delete(application)
        logger.info("application_deleted", application_id=application_id)

    def update_version(
        self,
        application: ApplicationModel,
        version: str,
        changelog: str,
        actor: UserModel,
    ) -> Tuple[ApplicationModel, VersionHistoryModel]:
        """Bump an application's version, record it and notify its QAs.

        The application write, the history insert and the notification are
        separate steps; a failure part way leaves the earlier steps in place.
        """
        version = (version or "").strip()
        changelog = (changelog or "").strip()
        if not version or not changelog:
            raise ValidationError("Version and changelog are required")

        application_id = application.id
        previous_version = application.version or DEFAULT_PREVIOUS_VERSION

        application.version = version
        application = self.applications.save(application)

        record = self.applications.add_version(
            VersionHistoryModel(
                application_id=application_id,
                version=version,
                previous_version=previous_version,
                changelog=changelog,
                updated_by_id=actor.id,
            )
        )
        logger.info(
            "application_version_updated",
            application_id=application_id,
            previous_version=previous_version,
            version=version,
            updated_by=actor.id,
        )

        notify_safely(
            self.notifier, "version_update", application_id, previous_version, version, changelog
        )
        return application, record

    def list_versions(self, application_id: str) -> List[VersionHistoryModel]:
        return self.applications.list_versions(application_id)

    def send_testing_reminder(
        self, application: ApplicationModel, actor: UserModel, message: Optional[str] = None
    ) -> TestingReminderModel:
        """Record a reminder to the currently assigned QAs and notify them."""
        if not application.assigned_qas:
            raise ValidationError("Application has no assigned QA users")

        message = (message or "").strip() or None
        reminder = TestingReminderModel(
            application_id=application.id,
            sent_by_id=actor.id,
            message=message,
        )
        reminder.notified_qas = list(application.assigned_qas)
        reminder = self.applications.add_reminder(reminder)
        logger.info(
            "testing_reminder_sent",
            application_id=reminder.application_id,
            reminder_id=reminder.id,
            recipients=len(reminder.notified_qas),
        )

        notify_safely(
            self.notifier, "testing_reminder", reminder.application_id, actor.name, message
        )
        return reminder

    def list_testing_reminders(self, application_id: str) -> List[TestingReminderModel]:
        return self.applications.list_reminders(application_id)

    def _resolve_qas(self, user_ids: List[str]) -> List[UserModel]:
        unique_ids = list(dict.fromkeys(user_ids))
        users = {user.id: user for user in self.users.get_many(unique_ids)}
        missing = [user_id for user_id in unique_ids if user_id not in users]
        if missing:
            raise ValidationError(f"Unknown users: {', '.join(missing)}")
        not_qa = [user_id for user_id in unique_ids if users[user_id].role != Role.QA.value]
        if not_qa:
            raise ValidationError(f"Only QA users can be assigned: {', '.join(not_qa)}")
        return [users[user_id] for user_id in unique_ids]

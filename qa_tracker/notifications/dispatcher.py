"""
Notification dispatcher.

Resolves the recipients of a business event, honours their channel
preferences and delivers through email, WhatsApp and the in-app realtime
channel. Delivery is best-effort: every channel call is isolated and its
failure is logged, never raised.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import structlog
from sqlalchemy.orm import Session

from ..config import Settings
from ..db.base import utc_now
from ..db.models import ApplicationModel, BugReportModel, UserModel
from ..enums import NotificationChannel, Role
from . import templates
from .channels import EmailSender, WhatsAppSender
from .ports import RealtimePublisher

logger = structlog.get_logger()


@dataclass(frozen=True)
class Recipient:
    """Detached snapshot of a user's addresses and preferences."""

    id: str
    name: str
    email: Optional[str]
    whatsapp_number: Optional[str]
    notify_email: bool
    notify_whatsapp: bool

    @classmethod
    def from_model(cls, user: UserModel) -> "Recipient":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            whatsapp_number=user.whatsapp_number,
            notify_email=bool(user.notify_email),
            notify_whatsapp=bool(user.notify_whatsapp),
        )

    @property
    def wants_email(self) -> bool:
        return self.notify_email and bool(self.email)

    @property
    def wants_whatsapp(self) -> bool:
        return self.notify_whatsapp and bool(self.whatsapp_number)


class NotificationDispatcher:
    """Implements the notifier hooks on top of the channel senders.

    The hook methods (``bug_pending_test`` ...) schedule the matching
    ``notify_*`` coroutine on the running event loop and return at once.
    Pending deliveries are awaited by :meth:`aclose`.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        email: EmailSender,
        whatsapp: WhatsAppSender,
        settings: Settings,
        realtime: Optional[RealtimePublisher] = None,
    ):
        self.session_factory = session_factory
        self.email = email
        self.whatsapp = whatsapp
        self.frontend_url = settings.frontend_url
        self.realtime = realtime
        self._pending: Set[asyncio.Task] = set()

    # Hooks

    def bug_pending_test(self, bug_id: str) -> None:
        self._schedule(self.notify_tester_pending_test(bug_id))

    def tester_decision(self, bug_id: str, decision: str, comment: str) -> None:
        self._schedule(self.notify_admins_tester_decision(bug_id, decision, comment))

    def version_update(
        self, application_id: str, previous_version: str, new_version: str, changelog: str
    ) -> None:
        self._schedule(
            self.notify_qas_version_update(
                application_id, previous_version, new_version, changelog
            )
        )

    def admin_comment(self, bug_id: str, comment: str, admin_name: str) -> None:
        self._schedule(self.notify_qas_admin_comment(bug_id, comment, admin_name))

    def testing_reminder(
        self, application_id: str, sender_name: str, message: Optional[str]
    ) -> None:
        self._schedule(self.notify_qas_testing_reminder(application_id, sender_name, message))

    # Dispatch

    async def notify_tester_pending_test(self, bug_id: str) -> int:
        """Tell the reporter a fix is waiting for their validation."""
        with self.session_factory() as db:
            bug = db.get(BugReportModel, bug_id)
            if bug is None:
                logger.warning("notification_target_missing", kind="bug", bug_id=bug_id)
                return 0
            title = bug.title
            app_name = bug.application.name if bug.application else "-"
            recipients = [Recipient.from_model(bug.reported_by)] if bug.reported_by else []

        return await self._deliver(
            "bug_pending_test",
            recipients,
            lambda r: templates.bug_pending_test(r.name, bug_id, title, app_name, self.frontend_url),
            {"type": "bug_pending_test", "bugId": bug_id, "title": title},
        )

    async def notify_admins_tester_decision(
        self, bug_id: str, decision: str, comment: str
    ) -> int:
        """Tell every admin what the tester decided."""
        with self.session_factory() as db:
            bug = db.get(BugReportModel, bug_id)
            if bug is None:
                logger.warning("notification_target_missing", kind="bug", bug_id=bug_id)
                return 0
            title = bug.title
            app_name = bug.application.name if bug.application else "-"
            tester_name = bug.reported_by.name if bug.reported_by else "-"
            admins = db.query(UserModel).filter(UserModel.role == Role.ADMIN.value).all()
            recipients = [Recipient.from_model(admin) for admin in admins]

        return await self._deliver(
            "tester_decision",
            recipients,
            lambda r: templates.tester_decision(
                r.name, tester_name, bug_id, title, app_name, decision, comment, self.frontend_url
            ),
            {"type": "tester_decision", "bugId": bug_id, "title": title, "decision": decision},
        )

    async def notify_qas_version_update(
        self, application_id: str, previous_version: str, new_version: str, changelog: str
    ) -> int:
        """Tell an application's assigned QAs about a new version."""
        with self.session_factory() as db:
            application = db.get(ApplicationModel, application_id)
            if application is None:
                logger.warning(
                    "notification_target_missing",
                    kind="application",
                    application_id=application_id,
                )
                return 0
            app_name = application.name
            recipients = [Recipient.from_model(qa) for qa in application.assigned_qas]

        return await self._deliver(
            "version_update",
            recipients,
            lambda r: templates.version_update(
                r.name, app_name, previous_version, new_version, changelog, self.frontend_url
            ),
            {
                "type": "version_update",
                "applicationId": application_id,
                "version": new_version,
                "previousVersion": previous_version,
            },
        )

    async def notify_qas_admin_comment(self, bug_id: str, comment: str, admin_name: str) -> int:
        """Tell the QAs assigned to the bug's application about an admin comment."""
        with self.session_factory() as db:
            bug = db.get(BugReportModel, bug_id)
            if bug is None:
                logger.warning("notification_target_missing", kind="bug", bug_id=bug_id)
                return 0
            title = bug.title
            application = bug.application
            app_name = application.name if application else "-"
            recipients = (
                [Recipient.from_model(qa) for qa in application.assigned_qas]
                if application
                else []
            )

        return await self._deliver(
            "admin_comment",
            recipients,
            lambda r: templates.admin_comment(
                r.name, admin_name, bug_id, title, app_name, comment, self.frontend_url
            ),
            {"type": "admin_comment", "bugId": bug_id, "title": title, "author": admin_name},
        )

    async def notify_qas_testing_reminder(
        self, application_id: str, sender_name: str, message: Optional[str]
    ) -> int:
        """Ask an application's assigned QAs to test its current version."""
        with self.session_factory() as db:
            application = db.get(ApplicationModel, application_id)
            if application is None:
                logger.warning(
                    "notification_target_missing",
                    kind="application",
                    application_id=application_id,
                )
                return 0
            app_name = application.name
            version = application.version
            recipients = [Recipient.from_model(qa) for qa in application.assigned_qas]

        return await self._deliver(
            "testing_reminder",
            recipients,
            lambda r: templates.testing_reminder(
                r.name, sender_name, app_name, version, message, self.frontend_url
            ),
            {"type": "testing_reminder", "applicationId": application_id, "version": version},
        )

    async def _deliver(
        self,
        event: str,
        recipients: List[Recipient],
        render: Callable[[Recipient], templates.Message],
        payload: Dict[str, Any],
    ) -> int:
        for recipient in recipients:
            message = render(recipient)

            if recipient.wants_email:
                await self._attempt(
                    event,
                    recipient,
                    NotificationChannel.EMAIL.value,
                    lambda: self.email.send(
                        recipient.email, message.subject, message.text, message.html
                    ),
                )
            if recipient.wants_whatsapp:
                await self._attempt(
                    event,
                    recipient,
                    NotificationChannel.WHATSAPP.value,
                    lambda: self.whatsapp.send(recipient.whatsapp_number, message.text),
                )
            if self.realtime is not None:
                await self._attempt(
                    event,
                    recipient,
                    "realtime",
                    lambda: self.realtime.emit_to_user(
                        recipient.id,
                        "notification:new",
                        {
                            **payload,
                            "message": message.subject,
                            "createdAt": utc_now().isoformat(),
                        },
                    ),
                )

        logger.info("notification_dispatched", notification=event, recipients=len(recipients))
        return len(recipients)

    async def _attempt(
        self,
        event: str,
        recipient: Recipient,
        channel: str,
        send: Callable[[], Awaitable[Any]],
    ) -> None:
        try:
            await send()
        except Exception as exc:
            logger.error(
                "notification_send_failed",
                notification=event,
                channel=channel,
                user_id=recipient.id,
                error=str(exc),
            )

    def _schedule(self, coro: Awaitable[int]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._guard(coro))
            return
        task = loop.create_task(self._guard(coro))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _guard(self, coro: Awaitable[int]) -> None:
        try:
            await coro
        except Exception:
            logger.exception("notification_dispatch_failed")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.whatsapp.aclose()

"""The boundary between business workflows and notification delivery."""

from typing import Any, Dict, Optional, Protocol

import structlog

logger = structlog.get_logger()


class NotifierPort(Protocol):
    """Fire-and-forget notification hooks.

    Implementations must return immediately and must never raise into the
    caller; delivery happens in the background and failures are logged.
    """

    def bug_pending_test(self, bug_id: str) -> None:
        ...

    def tester_decision(self, bug_id: str, decision: str, comment: str) -> None:
        ...

    def version_update(
        self, application_id: str, previous_version: str, new_version: str, changelog: str
    ) -> None:
        ...

    def admin_comment(self, bug_id: str, comment: str, admin_name: str) -> None:
        ...

    def testing_reminder(
        self, application_id: str, sender_name: str, message: Optional[str]
    ) -> None:
        ...


class RealtimePublisher(Protocol):
    """Pushes in-app events to a connected user."""

    async def emit_to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> int:
        ...


def notify_safely(notifier: NotifierPort, hook: str, *args: Any) -> None:
    """Call ``notifier.<hook>(*args)``, logging instead of raising on failure."""
    try:
        getattr(notifier, hook)(*args)
    except Exception:
        logger.exception("notification_dispatch_failed", hook=hook)

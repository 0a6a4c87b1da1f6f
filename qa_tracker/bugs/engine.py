"""
Bug report status engine.

All writes to a bug report's status, history, tester decision and comments go
through :class:`BugStatusEngine`. Validation always runs before any field is
touched, and each operation is persisted in a single commit.
"""

from datetime import datetime
from typing import Any, Callable, Mapping

import structlog

from ..core.errors import (
    AuthorizationError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..db.base import utc_now
from ..db.models import BugCommentModel, BugReportModel, BugStatusHistoryModel, UserModel
from ..db.repositories import BugReportRepository
from ..enums import BugStatus, Severity, TesterDecision
from ..notifications.ports import NotifierPort, notify_safely

logger = structlog.get_logger()

_STATUSES = {status.value for status in BugStatus}
_SEVERITIES = {severity.value for severity in Severity}
_DECISIONS = {decision.value for decision in TesterDecision}

_REQUIRED_FIELDS = (
    "title",
    "description",
    "steps_to_reproduce",
    "expected_behavior",
    "actual_behavior",
    "environment",
)


class BugStatusEngine:
    """Applies the bug report workflow and triggers its notifications."""

    def __init__(
        self,
        repository: BugReportRepository,
        notifier: NotifierPort,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.notifier = notifier
        self.clock = clock

    def create(self, fields: Mapping[str, Any], reporter: UserModel) -> BugReportModel:
        """File a new bug report. It always starts ``open`` with one history entry."""
        severity = fields.get("severity")
        if severity not in _SEVERITIES:
            raise ValidationError(
                f"Invalid severity '{severity}'. Must be one of: {', '.join(sorted(_SEVERITIES))}"
            )
        missing = [name for name in _REQUIRED_FIELDS if not str(fields.get(name) or "").strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        application_id = fields.get("application_id")
        if not application_id or self.repository.get_application(application_id) is None:
            raise NotFoundError("Application", str(application_id))

        now = self.clock()
        report = BugReportModel(
            title=fields["title"].strip(),
            description=fields["description"],
            steps_to_reproduce=fields["steps_to_reproduce"],
            expected_behavior=fields["expected_behavior"],
            actual_behavior=fields["actual_behavior"],
            severity=severity,
            environment=fields["environment"],
            application_id=application_id,
            reported_by_id=reporter.id,
            screenshots=list(fields.get("screenshots") or []),
            console_errors=fields.get("console_errors") or None,
            queries=fields.get("queries") or None,
            status=BugStatus.OPEN.value,
            is_regression=False,
            created_at=now,
            updated_at=now,
        )
        report.status_history.append(
            BugStatusHistoryModel(
                status=BugStatus.OPEN.value, changed_by_id=reporter.id, changed_at=now
            )
        )

        report = self.repository.add(report)
        logger.info(
            "bug_report_created",
            bug_id=report.id,
            application_id=application_id,
            severity=severity,
            reported_by=reporter.id,
        )
        return report

    def set_status(
        self, report: BugReportModel, new_status: str, actor: UserModel
    ) -> BugReportModel:
        """Move a report to ``new_status`` on behalf of an admin.

        Only ``pending-test`` is guarded: it may only be entered from
        ``resolved``. Every other transition is allowed, including reopening
        a closed report.

        Raises:
            AuthorizationError: if the actor is not an admin.
            ValidationError: if the status is unknown.
            InvalidTransitionError: if entering ``pending-test`` from anything
                but ``resolved``.
        """
        if not actor.is_admin:
            raise AuthorizationError("Only admins can change bug status")
        if new_status not in _STATUSES:
            raise ValidationError(
                f"Invalid status '{new_status}'. Must be one of: {', '.join(sorted(_STATUSES))}"
            )
        if new_status == BugStatus.PENDING_TEST.value and report.status != BugStatus.RESOLVED.value:
            raise InvalidTransitionError(
                report.status,
                new_status,
                "A bug can only be sent to testing after it is resolved",
            )

        bug_id = report.id
        previous = report.status
        self._append_status(report, new_status, actor)
        report = self.repository.save(report)

        logger.info(
            "bug_status_changed",
            bug_id=bug_id,
            from_status=previous,
            to_status=new_status,
            changed_by=actor.id,
        )
        if new_status == BugStatus.PENDING_TEST.value:
            notify_safely(self.notifier, "bug_pending_test", bug_id)
        return report

    def record_tester_decision(
        self, report: BugReportModel, decision: str, comment: str, actor: UserModel
    ) -> BugReportModel:
        """Record the reporter's verdict on a fix awaiting validation.

        ``fixed`` closes the report; ``regression`` and ``not-fixed`` reopen
        it, and ``regression`` also flags the report as a regression.
        """
        comment = (comment or "").strip()
        if decision not in _DECISIONS:
            raise ValidationError(
                f"Invalid decision '{decision}'. Must be one of: {', '.join(sorted(_DECISIONS))}"
            )
        if not comment:
            raise ValidationError("A comment is required with the tester decision")
        if report.status != BugStatus.PENDING_TEST.value:
            raise InvalidStateError("Bug is not pending test")
        if report.reported_by_id != actor.id:
            raise AuthorizationError("Only the tester who reported this bug can decide")

        if decision == TesterDecision.FIXED.value:
            new_status = BugStatus.CLOSED.value
        else:
            new_status = BugStatus.OPEN.value

        bug_id = report.id
        report.tester_decision = decision
        report.tester_comment = comment
        report.tester_decided_at = self.clock()
        if decision == TesterDecision.REGRESSION.value:
            report.is_regression = True
        self._append_status(report, new_status, actor)
        report = self.repository.save(report)

        logger.info(
            "tester_decision_recorded",
            bug_id=bug_id,
            decision=decision,
            new_status=new_status,
            tester=actor.id,
        )
        notify_safely(self.notifier, "tester_decision", bug_id, decision, comment)
        return report

    def add_comment(self, report: BugReportModel, text: str, actor: UserModel) -> BugReportModel:
        """Append a comment. Admin comments are pushed to the application's QAs."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required")

        bug_id = report.id
        report.comments.append(
            BugCommentModel(author_id=actor.id, text=text, created_at=self.clock())
        )
        report = self.repository.save(report)

        logger.info("bug_comment_added", bug_id=bug_id, author=actor.id, role=actor.role)
        if actor.is_admin:
            notify_safely(self.notifier, "admin_comment", bug_id, text, actor.name)
        return report

    def _append_status(self, report: BugReportModel, status: str, actor: UserModel) -> None:
        report.status = status
        report.status_history.append(
            BugStatusHistoryModel(status=status, changed_by_id=actor.id, changed_at=self.clock())
        )

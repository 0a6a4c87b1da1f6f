"""Tests for the bug report status engine."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from qa_tracker.bugs.engine import BugStatusEngine
from qa_tracker.core.errors import (
    AuthorizationError,
    InfrastructureError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from qa_tracker.db.repositories import BugReportRepository
from qa_tracker.enums import Role

from .conftest import RecordingNotifier

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine_under_test(db, notifier):
    return BugStatusEngine(BugReportRepository(db), notifier, clock=lambda: FIXED_NOW)


@pytest.fixture
def application(make_application, qa):
    return make_application(qas=[qa], name="Checkout")


@pytest.fixture
def report(engine_under_test, application, qa, bug_fields):
    return engine_under_test.create(bug_fields(application.id), qa)


def _walk_to(engine, report, admin, *statuses):
    for status in statuses:
        report = engine.set_status(report, status, admin)
    return report


class TestCreate:
    def test_new_report_starts_open_with_one_history_entry(self, report, qa):
        assert report.status == "open"
        assert report.is_regression is False
        assert report.tester_decision is None
        assert [entry.status for entry in report.status_history] == ["open"]
        assert report.status_history[0].changed_by_id == qa.id
        assert report.reported_by.id == qa.id

    def test_optional_fields_default_empty(self, report):
        data = report.to_dict()
        assert data["screenshots"] == []
        assert data["console_errors"] is None
        assert data["comments"] == []
        assert data["application"]["name"] == "Checkout"

    def test_invalid_severity_rejected(self, engine_under_test, application, qa, bug_fields):
        with pytest.raises(ValidationError):
            engine_under_test.create(bug_fields(application.id, severity="urgent"), qa)

    def test_missing_required_field_rejected(self, engine_under_test, application, qa, bug_fields):
        with pytest.raises(ValidationError) as exc_info:
            engine_under_test.create(bug_fields(application.id, environment="  "), qa)
        assert "environment" in exc_info.value.message

    def test_unknown_application_rejected(self, engine_under_test, qa, bug_fields):
        with pytest.raises(NotFoundError):
            engine_under_test.create(bug_fields("01HZZZZZZZZZZZZZZZZZZZZZZZ"), qa)


class TestSetStatus:
    def test_admin_moves_through_workflow(self, engine_under_test, report, admin, notifier):
        report = _walk_to(engine_under_test, report, admin, "in-progress", "resolved", "pending-test")

        assert report.status == "pending-test"
        assert [entry.status for entry in report.status_history] == [
            "open",
            "in-progress",
            "resolved",
            "pending-test",
        ]
        assert report.status_history[-1].changed_by_id == admin.id
        assert notifier.calls == [("bug_pending_test", (report.id,))]

    def test_qa_cannot_change_status(self, engine_under_test, report, qa):
        with pytest.raises(AuthorizationError):
            engine_under_test.set_status(report, "in-progress", qa)

    def test_unknown_status_rejected(self, engine_under_test, report, admin):
        with pytest.raises(ValidationError):
            engine_under_test.set_status(report, "done", admin)
        assert len(report.status_history) == 1

    def test_pending_test_requires_resolved(self, engine_under_test, report, admin, notifier):
        with pytest.raises(InvalidTransitionError) as exc_info:
            engine_under_test.set_status(report, "pending-test", admin)

        assert exc_info.value.current == "open"
        assert report.status == "open"
        assert len(report.status_history) == 1
        assert notifier.calls == []

    def test_closed_report_can_be_reopened(self, engine_under_test, report, admin):
        report = _walk_to(engine_under_test, report, admin, "closed", "open")
        assert report.status == "open"
        assert len(report.status_history) == 3

    def test_same_status_still_recorded(self, engine_under_test, report, admin):
        report = engine_under_test.set_status(report, "open", admin)
        assert [entry.status for entry in report.status_history] == ["open", "open"]

    def test_notifier_failure_does_not_fail_transition(self, db, report, admin):
        engine = BugStatusEngine(BugReportRepository(db), RecordingNotifier(fail=True))
        report = _walk_to(engine, report, admin, "resolved", "pending-test")
        assert report.status == "pending-test"

    def test_failed_save_rolls_back_without_notifying(
        self, db, engine_under_test, report, admin, notifier, monkeypatch
    ):
        report = engine_under_test.set_status(report, "resolved", admin)
        bug_id = report.id

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(InfrastructureError):
            engine_under_test.set_status(report, "pending-test", admin)

        reloaded = BugReportRepository(db).get_with_relations(bug_id)
        assert reloaded.status == "resolved"
        assert [entry.status for entry in reloaded.status_history] == ["open", "resolved"]
        assert notifier.calls == []


class TestTesterDecision:
    @pytest.fixture
    def pending(self, engine_under_test, report, admin):
        return _walk_to(engine_under_test, report, admin, "resolved", "pending-test")

    def test_fixed_closes_report(self, engine_under_test, pending, qa, notifier):
        report = engine_under_test.record_tester_decision(pending, "fixed", "Works now", qa)

        assert report.status == "closed"
        assert report.is_regression is False
        assert report.tester_decision_dict() == {
            "decision": "fixed",
            "comment": "Works now",
            "decided_at": FIXED_NOW.isoformat(),
        }
        assert report.status_history[-1].status == "closed"
        assert notifier.calls[-1] == ("tester_decision", (report.id, "fixed", "Works now"))

    def test_regression_reopens_and_flags(self, engine_under_test, pending, qa):
        report = engine_under_test.record_tester_decision(
            pending, "regression", "Broke the cart", qa
        )
        assert report.status == "open"
        assert report.is_regression is True

    def test_not_fixed_reopens_without_flag(self, engine_under_test, pending, qa):
        report = engine_under_test.record_tester_decision(pending, "not-fixed", "Still broken", qa)
        assert report.status == "open"
        assert report.is_regression is False

    def test_regression_flag_survives_later_fix(self, engine_under_test, pending, qa, admin):
        report = engine_under_test.record_tester_decision(pending, "regression", "Broke it", qa)
        report = _walk_to(engine_under_test, report, admin, "resolved", "pending-test")
        report = engine_under_test.record_tester_decision(report, "fixed", "Good now", qa)

        assert report.status == "closed"
        assert report.is_regression is True
        assert report.tester_decision == "fixed"

    def test_comment_required(self, engine_under_test, pending, qa):
        with pytest.raises(ValidationError):
            engine_under_test.record_tester_decision(pending, "fixed", "   ", qa)
        assert pending.tester_decision is None

    def test_invalid_decision_rejected(self, engine_under_test, pending, qa):
        with pytest.raises(ValidationError):
            engine_under_test.record_tester_decision(pending, "maybe", "Hmm", qa)

    def test_only_when_pending_test(self, engine_under_test, report, qa):
        with pytest.raises(InvalidStateError):
            engine_under_test.record_tester_decision(report, "fixed", "Works", qa)

    def test_only_the_reporter_decides(self, engine_under_test, pending, make_user, admin):
        other_qa = make_user(Role.QA)
        with pytest.raises(AuthorizationError):
            engine_under_test.record_tester_decision(pending, "fixed", "Works", other_qa)
        with pytest.raises(AuthorizationError):
            engine_under_test.record_tester_decision(pending, "fixed", "Works", admin)
        assert pending.status == "pending-test"


class TestComments:
    def test_comment_appended_and_trimmed(self, engine_under_test, report, qa, notifier):
        report = engine_under_test.add_comment(report, "  Seen again on Firefox  ", qa)

        assert [comment.text for comment in report.comments] == ["Seen again on Firefox"]
        assert report.comments[0].to_dict()["author"]["role"] == "qa"
        assert notifier.calls == []

    def test_admin_comment_notifies(self, engine_under_test, report, admin, notifier):
        engine_under_test.add_comment(report, "Please retest", admin)
        assert notifier.calls == [("admin_comment", (report.id, "Please retest", admin.name))]

    def test_empty_comment_rejected(self, engine_under_test, report, qa):
        with pytest.raises(ValidationError):
            engine_under_test.add_comment(report, " ", qa)

    def test_comments_keep_insertion_order(self, engine_under_test, report, qa, admin):
        report = engine_under_test.add_comment(report, "first", qa)
        report = engine_under_test.add_comment(report, "second", admin)
        report = engine_under_test.add_comment(report, "third", qa)
        assert [comment.text for comment in report.comments] == ["first", "second", "third"]

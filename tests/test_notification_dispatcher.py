"""
Tests for the notification dispatcher.

Channel senders are replaced by in-memory fakes; recipients are resolved from
the real test database.
"""

import httpx
import pytest

from qa_tracker.api import create_app
from qa_tracker.db.base import get_session_local
from qa_tracker.db.models import BugReportModel
from qa_tracker.enums import Role
from qa_tracker.notifications.channels import DeliveryError
from qa_tracker.notifications.dispatcher import NotificationDispatcher, Recipient
from qa_tracker.notifications.ports import notify_safely

from .conftest import RecordingNotifier, bug_payload


class FakeEmail:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send(self, to_email, subject, text, html):
        if self.fail:
            raise DeliveryError("email", "connection refused")
        self.sent.append((to_email, subject))
        return True


class FakeWhatsApp:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send(self, phone_number, text):
        self.sent.append((phone_number, text))
        return True

    async def aclose(self):
        self.closed = True


class FakeRealtime:
    def __init__(self):
        self.events = []

    async def emit_to_user(self, user_id, event, data):
        self.events.append((user_id, event, data))
        return 1


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
def whatsapp():
    return FakeWhatsApp()


@pytest.fixture
def realtime():
    return FakeRealtime()


@pytest.fixture
def dispatcher(engine, settings, email, whatsapp, realtime):
    return NotificationDispatcher(
        get_session_local(engine), email, whatsapp, settings, realtime=realtime
    )


@pytest.fixture
def application(make_application, qa):
    return make_application(qas=[qa], name="Payments", version="4.2.0")


@pytest.fixture
def bug(db, application, qa):
    report = BugReportModel(
        title="Refund fails",
        description="d",
        steps_to_reproduce="s",
        expected_behavior="e",
        actual_behavior="a",
        severity="high",
        environment="prod",
        application_id=application.id,
        reported_by_id=qa.id,
    )
    db.add(report)
    db.commit()
    return report


class TestNotifySafely:
    def test_calls_hook(self):
        notifier = RecordingNotifier()
        notify_safely(notifier, "bug_pending_test", "bug-1")
        assert notifier.calls == [("bug_pending_test", ("bug-1",))]

    def test_failure_is_swallowed(self):
        notifier = RecordingNotifier(fail=True)
        notify_safely(notifier, "admin_comment", "bug-1", "Retest", "Alice")
        assert notifier.hooks() == ["admin_comment"]


class TestRecipient:
    def test_preferences_and_addresses(self, make_user):
        user = make_user(Role.QA, whatsapp_number=None, notify_email=False)
        recipient = Recipient.from_model(user)
        assert recipient.wants_email is False
        assert recipient.wants_whatsapp is False


class TestDispatch:
    @pytest.mark.asyncio
    async def test_pending_test_goes_to_reporter(self, dispatcher, bug, qa, email, whatsapp, realtime):
        delivered = await dispatcher.notify_tester_pending_test(bug.id)

        assert delivered == 1
        assert email.sent == [(qa.email, "Bug fixed, ready for testing [Payments]")]
        assert [phone for phone, _ in whatsapp.sent] == [qa.whatsapp_number]
        assert "Refund fails" in whatsapp.sent[0][1]

        user_id, event, data = realtime.events[0]
        assert (user_id, event) == (qa.id, "notification:new")
        assert data["type"] == "bug_pending_test"
        assert data["bugId"] == bug.id

    @pytest.mark.asyncio
    async def test_tester_decision_goes_to_every_admin(self, dispatcher, bug, make_user, email):
        first = make_user(Role.ADMIN)
        second = make_user(Role.ADMIN)

        delivered = await dispatcher.notify_admins_tester_decision(bug.id, "regression", "Broke it")

        assert delivered == 2
        assert {to for to, _ in email.sent} == {first.email, second.email}

    @pytest.mark.asyncio
    async def test_version_update_goes_to_assigned_qas(
        self, dispatcher, application, qa, make_user, email
    ):
        make_user(Role.QA)  # not assigned

        delivered = await dispatcher.notify_qas_version_update(
            application.id, "4.2.0", "4.3.0", "New refunds flow"
        )

        assert delivered == 1
        assert email.sent == [(qa.email, "New version: Payments v4.3.0")]

    @pytest.mark.asyncio
    async def test_admin_comment_goes_to_application_qas(self, dispatcher, bug, qa, whatsapp):
        delivered = await dispatcher.notify_qas_admin_comment(bug.id, "Retest please", "Alice")
        assert delivered == 1
        assert "Retest please" in whatsapp.sent[0][1]

    @pytest.mark.asyncio
    async def test_testing_reminder(self, dispatcher, application, qa, email):
        delivered = await dispatcher.notify_qas_testing_reminder(application.id, "Alice", None)
        assert delivered == 1
        assert email.sent == [(qa.email, "Testing reminder: Payments v4.2.0")]

    @pytest.mark.asyncio
    async def test_preferences_respected(self, dispatcher, bug, qa, db, email, whatsapp, realtime):
        qa.notify_whatsapp = False
        db.commit()

        await dispatcher.notify_tester_pending_test(bug.id)

        assert len(email.sent) == 1
        assert whatsapp.sent == []
        assert len(realtime.events) == 1

    @pytest.mark.asyncio
    async def test_channel_failure_is_isolated(self, engine, settings, bug, qa, whatsapp, realtime):
        dispatcher = NotificationDispatcher(
            get_session_local(engine), FakeEmail(fail=True), whatsapp, settings, realtime=realtime
        )

        delivered = await dispatcher.notify_tester_pending_test(bug.id)

        assert delivered == 1
        assert len(whatsapp.sent) == 1
        assert len(realtime.events) == 1

    @pytest.mark.asyncio
    async def test_missing_target(self, dispatcher, email):
        assert await dispatcher.notify_tester_pending_test("missing") == 0
        assert await dispatcher.notify_qas_version_update("missing", "1", "2", "x") == 0
        assert email.sent == []

    @pytest.mark.asyncio
    async def test_orphaned_bug_has_no_recipients(self, dispatcher, bug, qa, db, email):
        db.delete(qa)
        db.commit()

        assert await dispatcher.notify_tester_pending_test(bug.id) == 0
        assert email.sent == []


class TestScheduling:
    @pytest.mark.asyncio
    async def test_hooks_schedule_on_running_loop(self, dispatcher, bug, qa, email):
        dispatcher.bug_pending_test(bug.id)
        assert dispatcher.pending == 1

        await dispatcher.drain()

        assert dispatcher.pending == 0
        assert email.sent == [(qa.email, "Bug fixed, ready for testing [Payments]")]

    def test_hooks_run_inline_without_loop(self, dispatcher, application, qa, email):
        dispatcher.testing_reminder(application.id, "Alice", "Smoke test please")
        assert email.sent == [(qa.email, "Testing reminder: Payments v4.2.0")]

    @pytest.mark.asyncio
    async def test_aclose_drains_and_closes(self, dispatcher, application, email, whatsapp):
        dispatcher.version_update(application.id, "4.2.0", "4.2.1", "Patch")
        await dispatcher.aclose()

        assert len(email.sent) == 1
        assert whatsapp.closed is True


class TestThroughRoutes:
    """Routes drive the real dispatcher wired up by ``create_app``."""

    @pytest.fixture
    def live_app(self, settings, engine, email, whatsapp):
        app = create_app(settings, engine=engine)
        app.state.notifier.email = email
        app.state.notifier.whatsapp = whatsapp
        return app

    @pytest.mark.asyncio
    async def test_workflow_delivers_by_preference(
        self, live_app, application, qa, make_user, auth_headers, email
    ):
        quiet_admin = make_user(Role.ADMIN, email="quiet@example.com", notify_email=False)
        loud_admin = make_user(Role.ADMIN, email="loud@example.com")
        dispatcher = live_app.state.notifier

        transport = httpx.ASGITransport(app=live_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/bug-reports", json=bug_payload(application.id), headers=auth_headers(qa)
            )
            assert response.status_code == 201
            bug_id = response.json()["id"]

            for status in ("resolved", "pending-test"):
                response = await client.patch(
                    f"/api/bug-reports/{bug_id}/status",
                    json={"status": status},
                    headers=auth_headers(quiet_admin),
                )
                assert response.status_code == 200

            await dispatcher.drain()
            assert email.sent == [(qa.email, "Bug fixed, ready for testing [Payments]")]

            response = await client.patch(
                f"/api/bug-reports/{bug_id}/tester-decision",
                json={"decision": "fixed", "comment": "Verified on staging"},
                headers=auth_headers(qa),
            )
            assert response.status_code == 200

            await dispatcher.drain()

        recipients = [to_email for to_email, _ in email.sent[1:]]
        assert recipients == [loud_admin.email]
        assert dispatcher.pending == 0

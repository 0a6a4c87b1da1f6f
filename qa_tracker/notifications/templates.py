"""Message texts for notification channels.

Each builder returns a :class:`Message` with an email subject, a plain text
body (also used for WhatsApp) and an HTML body.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional

DECISION_LABELS = {
    "fixed": "Fixed",
    "regression": "Caused a regression",
    "not-fixed": "Not fixed",
}


@dataclass(frozen=True)
class Message:
    subject: str
    text: str
    html: str


def _html(heading: str, greeting_name: str, paragraphs: list, link: str, link_label: str) -> str:
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #2563eb;">{escape(heading)}</h2>'
        f"<p>Hello <strong>{escape(greeting_name)}</strong>,</p>"
        f"{body}"
        f'<p style="text-align: center; margin: 30px 0;"><a href="{escape(link)}">'
        f"{escape(link_label)}</a></p>"
        '<p style="color: #6b7280; font-size: 12px;">QA Tracker</p>'
        "</div>"
    )


def bug_pending_test(
    recipient_name: str, bug_id: str, bug_title: str, app_name: str, frontend_url: str
) -> Message:
    subject = f"Bug fixed, ready for testing [{app_name}]"
    text = (
        f"*Bug fixed - testing required*\n\n"
        f"Hello *{recipient_name}*,\n\n"
        f"The following bug was marked as resolved and needs your validation:\n\n"
        f"*{bug_title}*\nApplication: {app_name}\nID: {bug_id}\n\n"
        f"Please review it and choose one of: Fixed, Caused a regression, Not fixed.\n\n"
        f"{frontend_url}"
    )
    html = _html(
        "Bug fixed, ready for testing",
        recipient_name,
        [
            "The following bug was marked as <strong>resolved</strong> and needs your validation:",
            f"<strong>{escape(bug_title)}</strong><br>Application: {escape(app_name)}"
            f"<br>ID: {escape(bug_id)}",
            "Please review it and choose one of: Fixed, Caused a regression, Not fixed.",
        ],
        frontend_url,
        "Review bug",
    )
    return Message(subject, text, html)


def tester_decision(
    recipient_name: str,
    tester_name: str,
    bug_id: str,
    bug_title: str,
    app_name: str,
    decision: str,
    comment: str,
    frontend_url: str,
) -> Message:
    label = DECISION_LABELS.get(decision, decision)
    subject = f"Tester decision: {bug_title} [{app_name}]"
    text = (
        f"*Tester decision on bug*\n\n"
        f"Hello *{recipient_name}*,\n\n"
        f"Tester *{tester_name}* evaluated the following bug:\n\n"
        f"*{bug_title}*\nApplication: {app_name}\nID: {bug_id}\n\n"
        f"*Decision:* {label}\n\n*Comment:*\n{comment}\n\n"
        f"{frontend_url}"
    )
    html = _html(
        "Tester decision",
        recipient_name,
        [
            f"Tester <strong>{escape(tester_name)}</strong> evaluated the following bug:",
            f"<strong>{escape(bug_title)}</strong><br>Application: {escape(app_name)}"
            f"<br>ID: {escape(bug_id)}",
            f"<strong>Decision:</strong> {escape(label)}",
            f"<strong>Comment:</strong><br>{escape(comment)}",
        ],
        frontend_url,
        "View bug",
    )
    return Message(subject, text, html)


def version_update(
    recipient_name: str,
    app_name: str,
    previous_version: str,
    new_version: str,
    changelog: str,
    frontend_url: str,
) -> Message:
    subject = f"New version: {app_name} v{new_version}"
    text = (
        f"*New version available*\n\n"
        f"Hello *{recipient_name}*,\n\n"
        f"*{app_name}* was updated from v{previous_version} to *v{new_version}*.\n\n"
        f"*Changelog:*\n{changelog}\n\n"
        f"Please test the new version.\n\n{frontend_url}"
    )
    html = _html(
        "New version available",
        recipient_name,
        [
            f"<strong>{escape(app_name)}</strong> was updated from v{escape(previous_version)} "
            f"to <strong>v{escape(new_version)}</strong>.",
            f"<strong>Changelog:</strong><br>{escape(changelog)}",
            "Please test the new version.",
        ],
        frontend_url,
        "Open QA Tracker",
    )
    return Message(subject, text, html)


def admin_comment(
    recipient_name: str,
    admin_name: str,
    bug_id: str,
    bug_title: str,
    app_name: str,
    comment: str,
    frontend_url: str,
) -> Message:
    subject = f"New comment on: {bug_title} [{app_name}]"
    text = (
        f"*New admin comment*\n\n"
        f"Hello *{recipient_name}*,\n\n"
        f"*{admin_name}* commented on a bug:\n\n"
        f"*{bug_title}*\nApplication: {app_name}\nID: {bug_id}\n\n"
        f"{comment}\n\n{frontend_url}"
    )
    html = _html(
        "New admin comment",
        recipient_name,
        [
            f"<strong>{escape(admin_name)}</strong> commented on a bug:",
            f"<strong>{escape(bug_title)}</strong><br>Application: {escape(app_name)}"
            f"<br>ID: {escape(bug_id)}",
            escape(comment),
        ],
        frontend_url,
        "View comment",
    )
    return Message(subject, text, html)


def testing_reminder(
    recipient_name: str,
    sender_name: str,
    app_name: str,
    version: str,
    message: Optional[str],
    frontend_url: str,
) -> Message:
    subject = f"Testing reminder: {app_name} v{version}"
    note = f"\n\n*Message:*\n{message}" if message else ""
    text = (
        f"*Testing reminder*\n\n"
        f"Hello *{recipient_name}*,\n\n"
        f"*{sender_name}* asks you to test *{app_name}* v{version}.{note}\n\n"
        f"{frontend_url}"
    )
    paragraphs = [
        f"<strong>{escape(sender_name)}</strong> asks you to test "
        f"<strong>{escape(app_name)}</strong> v{escape(version)}."
    ]
    if message:
        paragraphs.append(f"<strong>Message:</strong><br>{escape(message)}")
    html = _html("Testing reminder", recipient_name, paragraphs, frontend_url, "Start testing")
    return Message(subject, text, html)


def channel_check(recipient_name: str, channel: str) -> Message:
    subject = "QA Tracker test notification"
    text = (
        f"Hello *{recipient_name}*,\n\n"
        f"This is a test {channel} notification from QA Tracker. "
        f"If you received it, the channel is working."
    )
    html = _html(
        "Test notification",
        recipient_name,
        [f"This is a test {escape(channel)} notification from QA Tracker."],
        "#",
        "QA Tracker",
    )
    return Message(subject, text, html)

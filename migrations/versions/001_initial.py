"""Create initial tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ("open", "in-progress", "resolved", "pending-test", "closed")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("admin", "qa", name="user_role", native_enum=False),
            nullable=False,
        ),
        sa.Column("whatsapp_number", sa.String(32), nullable=True),
        sa.Column("notify_email", sa.Boolean, nullable=False),
        sa.Column("notify_whatsapp", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "applications",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("version", sa.String(50), nullable=False),
        sa.Column("platform", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "application_qas",
        sa.Column(
            "application_id",
            sa.String(26),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "bug_reports",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("steps_to_reproduce", sa.Text, nullable=False),
        sa.Column("expected_behavior", sa.Text, nullable=False),
        sa.Column("actual_behavior", sa.Text, nullable=False),
        sa.Column(
            "severity",
            sa.Enum("low", "medium", "high", "critical", name="bug_severity", native_enum=False),
            nullable=False,
        ),
        sa.Column("environment", sa.String(255), nullable=False),
        sa.Column(
            "application_id",
            sa.String(26),
            sa.ForeignKey("applications.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "reported_by_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("screenshots", sa.JSON, nullable=False),
        sa.Column("console_errors", sa.Text, nullable=True),
        sa.Column("queries", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="bug_status", native_enum=False),
            nullable=False,
        ),
        sa.Column("is_regression", sa.Boolean, nullable=False),
        sa.Column(
            "tester_decision",
            sa.Enum("fixed", "regression", "not-fixed", name="tester_decision", native_enum=False),
            nullable=True,
        ),
        sa.Column("tester_comment", sa.Text, nullable=True),
        sa.Column("tester_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bug_reports_severity", "bug_reports", ["severity"])
    op.create_index("ix_bug_reports_status", "bug_reports", ["status"])
    op.create_index("ix_bug_reports_application_id", "bug_reports", ["application_id"])
    op.create_index("ix_bug_reports_reported_by_id", "bug_reports", ["reported_by_id"])
    op.create_index("ix_bug_reports_status_severity", "bug_reports", ["status", "severity"])
    op.create_index("ix_bug_reports_created_at", "bug_reports", ["created_at"])

    op.create_table(
        "bug_status_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "bug_report_id",
            sa.String(26),
            sa.ForeignKey("bug_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="bug_history_status", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "changed_by_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_bug_status_history_bug_report_id", "bug_status_history", ["bug_report_id"]
    )

    op.create_table(
        "bug_comments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "bug_report_id",
            sa.String(26),
            sa.ForeignKey("bug_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bug_comments_bug_report_id", "bug_comments", ["bug_report_id"])

    op.create_table(
        "version_history",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "application_id",
            sa.String(26),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version", sa.String(50), nullable=False),
        sa.Column("previous_version", sa.String(50), nullable=False),
        sa.Column("changelog", sa.Text, nullable=False),
        sa.Column(
            "updated_by_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_version_history_application_id", "version_history", ["application_id"]
    )

    op.create_table(
        "testing_reminders",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "application_id",
            sa.String(26),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sent_by_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_testing_reminders_application_id", "testing_reminders", ["application_id"]
    )

    op.create_table(
        "testing_reminder_recipients",
        sa.Column(
            "reminder_id",
            sa.String(26),
            sa.ForeignKey("testing_reminders.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("testing_reminder_recipients")
    op.drop_table("testing_reminders")
    op.drop_table("version_history")
    op.drop_table("bug_comments")
    op.drop_table("bug_status_history")
    op.drop_table("bug_reports")
    op.drop_table("application_qas")
    op.drop_table("applications")
    op.drop_table("users")

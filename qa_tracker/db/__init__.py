"""Database package for QA Tracker."""

from .base import Base, get_engine, get_session_local, init_database
from .models import (
    ApplicationModel,
    BugCommentModel,
    BugReportModel,
    BugStatusHistoryModel,
    TestingReminderModel,
    UserModel,
    VersionHistoryModel,
)
from .repositories import ApplicationRepository, BugReportRepository, UserRepository

__all__ = [
    "Base",
    "get_engine",
    "get_session_local",
    "init_database",
    "ApplicationModel",
    "BugCommentModel",
    "BugReportModel",
    "BugStatusHistoryModel",
    "TestingReminderModel",
    "UserModel",
    "VersionHistoryModel",
    "ApplicationRepository",
    "BugReportRepository",
    "UserRepository",
]

"""
QA Tracker

Bug tracking for QA teams: applications, testers, bug reports and fix validation.
"""

import importlib.metadata

__version__ = importlib.metadata.version("qa-tracker")

from .enums import BugStatus, Role, Severity, TesterDecision

__all__ = [
    "BugStatus",
    "Role",
    "Severity",
    "TesterDecision",
]

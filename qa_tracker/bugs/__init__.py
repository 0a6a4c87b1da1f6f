"""Bug reports: status engine, statistics and routes."""

from .engine import BugStatusEngine
from .stats import BugStatistics

__all__ = ["BugStatusEngine", "BugStatistics"]

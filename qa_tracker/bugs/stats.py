"""Aggregate statistics over bug reports."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..db.base import as_utc, utc_now
from ..db.models import ApplicationModel, BugReportModel
from ..enums import BugStatus, Severity

MAX_TREND_DAYS = 365
TOP_APPLICATIONS = 5


class BugStatistics:
    """Read-only statistics for the admin dashboard."""

    def __init__(self, db: Session):
        self.db = db

    def summary(self) -> Dict[str, Any]:
        """Counts by status and severity plus the applications with most reports."""
        status_counts = dict(
            self.db.query(BugReportModel.status, func.count(BugReportModel.id))
            .group_by(BugReportModel.status)
            .all()
        )
        severity_counts = dict(
            self.db.query(BugReportModel.severity, func.count(BugReportModel.id))
            .group_by(BugReportModel.severity)
            .all()
        )

        report_count = func.count(BugReportModel.id).label("count")
        top_rows = (
            self.db.query(
                ApplicationModel.id,
                ApplicationModel.name,
                ApplicationModel.version,
                report_count,
            )
            .join(BugReportModel, BugReportModel.application_id == ApplicationModel.id)
            .group_by(ApplicationModel.id, ApplicationModel.name, ApplicationModel.version)
            .order_by(desc(report_count), ApplicationModel.name)
            .limit(TOP_APPLICATIONS)
            .all()
        )

        return {
            "total": sum(status_counts.values()),
            "by_status": {
                status.value.replace("-", "_"): status_counts.get(status.value, 0)
                for status in BugStatus
            },
            "by_severity": {
                severity.value: severity_counts.get(severity.value, 0) for severity in Severity
            },
            "top_applications": [
                {"id": row.id, "name": row.name, "version": row.version, "count": row.count}
                for row in top_rows
            ],
        }

    def trends(self, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Reports created per day over the last ``days`` days, oldest first.

        Days without reports are included with a zero count.
        """
        if days < 1 or days > MAX_TREND_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_TREND_DAYS}")

        now = as_utc(now or utc_now())
        first_day = now.date() - timedelta(days=days - 1)
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=now.tzinfo)

        created = (
            self.db.query(BugReportModel.created_at)
            .filter(BugReportModel.created_at >= since)
            .all()
        )
        per_day = Counter(as_utc(row.created_at).date() for row in created)

        return [
            {
                "date": (first_day + timedelta(days=offset)).isoformat(),
                "count": per_day.get(first_day + timedelta(days=offset), 0),
            }
            for offset in range(days)
        ]

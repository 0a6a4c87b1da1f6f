"""
Bug report API routes.

All endpoints are prefixed with /bug-reports.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..db.models import BugReportModel, UserModel
from ..db.repositories import BugReportRepository
from ..dependencies import get_current_user, get_db, get_notifier, get_presence
from ..notifications.ports import NotifierPort
from ..realtime.presence import PresenceHub
from .engine import BugStatusEngine
from .schemas import BugReportCreate, CommentCreate, StatusUpdate, TesterDecisionCreate
from .stats import MAX_TREND_DAYS, BugStatistics

router = APIRouter(prefix="/bug-reports", tags=["bug-reports"])


def get_status_engine(
    db: Session = Depends(get_db),
    notifier: NotifierPort = Depends(get_notifier),
) -> BugStatusEngine:
    return BugStatusEngine(BugReportRepository(db), notifier)


def _load(engine: BugStatusEngine, bug_id: str) -> BugReportModel:
    report = engine.repository.get_with_relations(bug_id)
    if report is None:
        raise NotFoundError("Bug report", bug_id)
    return report


# =============================================================================
# Statistics
# =============================================================================


@router.get("/stats/summary")
async def stats_summary(
    db: Session = Depends(get_db),
    _: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """Counts by status and severity plus the most reported applications."""
    return BugStatistics(db).summary()


@router.get("/stats/trends")
async def stats_trends(
    days: int = Query(30, ge=1, le=MAX_TREND_DAYS),
    db: Session = Depends(get_db),
    _: UserModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Reports created per day, zero-filled, oldest first."""
    return BugStatistics(db).trends(days)


# =============================================================================
# Reports
# =============================================================================


@router.get("")
async def list_bug_reports(
    status: Optional[str] = None,
    severity: Optional[str] = None,
    application_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """List bug reports, newest first. QA users only see their own reports."""
    items, total = BugReportRepository(db).list(
        status=status,
        severity=severity,
        application_id=application_id,
        reported_by_id=None if user.is_admin else user.id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return {
        "items": [report.to_dict() for report in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("", status_code=201)
async def create_bug_report(
    body: BugReportCreate,
    engine: BugStatusEngine = Depends(get_status_engine),
    presence: PresenceHub = Depends(get_presence),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """File a new bug report."""
    report = engine.create(body.model_dump(), user)
    await presence.emit_bug_created(report.id, report.title, user.name)
    return report.to_dict()


@router.get("/application/{application_id}")
async def list_application_bug_reports(
    application_id: str,
    db: Session = Depends(get_db),
    _: UserModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """All bug reports filed against one application."""
    reports = BugReportRepository(db).list_by_application(application_id)
    return [report.to_dict() for report in reports]


@router.get("/{bug_id}")
async def get_bug_report(
    bug_id: str,
    engine: BugStatusEngine = Depends(get_status_engine),
    _: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    return _load(engine, bug_id).to_dict()


@router.patch("/{bug_id}/status")
async def update_bug_status(
    bug_id: str,
    body: StatusUpdate,
    engine: BugStatusEngine = Depends(get_status_engine),
    presence: PresenceHub = Depends(get_presence),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """Change the status of a report (admins only)."""
    report = engine.set_status(_load(engine, bug_id), body.status, user)
    await presence.emit_bug_status_changed(bug_id, report.status, user.name)
    return report.to_dict()


@router.patch("/{bug_id}/tester-decision")
async def record_tester_decision(
    bug_id: str,
    body: TesterDecisionCreate,
    engine: BugStatusEngine = Depends(get_status_engine),
    presence: PresenceHub = Depends(get_presence),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """Record the reporter's verdict on a fix awaiting testing."""
    report = engine.record_tester_decision(_load(engine, bug_id), body.decision, body.comment, user)
    await presence.emit_bug_status_changed(bug_id, report.status, user.name)
    await presence.emit_bug_updated(
        bug_id,
        {"testerDecision": report.tester_decision_dict(), "isRegression": report.is_regression},
    )
    return report.to_dict()


@router.post("/{bug_id}/comments", status_code=201)
async def add_comment(
    bug_id: str,
    body: CommentCreate,
    engine: BugStatusEngine = Depends(get_status_engine),
    presence: PresenceHub = Depends(get_presence),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    report = engine.add_comment(_load(engine, bug_id), body.text, user)
    await presence.emit_bug_updated(bug_id, {"comments": len(report.comments)})
    return report.to_dict()

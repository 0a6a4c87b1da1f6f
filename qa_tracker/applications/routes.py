"""
Application API routes.

All endpoints are prefixed with /applications. Reads are open to any
authenticated user; writes are admin-only.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.models import UserModel
from ..db.repositories import ApplicationRepository, UserRepository
from ..dependencies import get_current_user, get_db, get_notifier, require_admin
from ..notifications.ports import NotifierPort
from .schemas import ApplicationCreate, ApplicationUpdate, ReminderCreate, VersionUpdate
from .service import ApplicationService

router = APIRouter(prefix="/applications", tags=["applications"])


def get_application_service(
    db: Session = Depends(get_db),
    notifier: NotifierPort = Depends(get_notifier),
) -> ApplicationService:
    return ApplicationService(ApplicationRepository(db), UserRepository(db), notifier)


@router.get("")
async def list_applications(
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return [application.to_dict() for application in service.list()]


@router.post("", status_code=201)
async def create_application(
    body: ApplicationCreate,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    return service.create(body.model_dump()).to_dict()


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    return service.get(application_id).to_dict()


@router.put("/{application_id}")
async def update_application(
    application_id: str,
    body: ApplicationUpdate,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    application = service.get(application_id)
    return service.update(application, body.model_dump(exclude_unset=True)).to_dict()


@router.delete("/{application_id}")
async def delete_application(
    application_id: str,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    service.delete(service.get(application_id))
    return {"message": "Application deleted"}


# =============================================================================
# Versions
# =============================================================================


@router.patch("/{application_id}/version")
async def update_application_version(
    application_id: str,
    body: VersionUpdate,
    service: ApplicationService = Depends(get_application_service),
    admin: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    """Bump the version, record it in the history and notify assigned QAs."""
    application, record = service.update_version(
        service.get(application_id), body.version, body.changelog, admin
    )
    return {
        "application": application.to_dict(),
        "version_history": record.to_dict(),
        "message": "Version updated and notifications sent",
    }


@router.get("/{application_id}/versions")
async def list_application_versions(
    application_id: str,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in service.list_versions(application_id)]


# =============================================================================
# Testing reminders
# =============================================================================


@router.post("/{application_id}/testing-reminders", status_code=201)
async def send_testing_reminder(
    application_id: str,
    body: ReminderCreate,
    service: ApplicationService = Depends(get_application_service),
    admin: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    """Ask the application's assigned QAs to test the current version."""
    reminder = service.send_testing_reminder(service.get(application_id), admin, body.message)
    return reminder.to_dict()


@router.get("/{application_id}/testing-reminders")
async def list_testing_reminders(
    application_id: str,
    service: ApplicationService = Depends(get_application_service),
    _: UserModel = Depends(require_admin),
) -> List[Dict[str, Any]]:
    return [reminder.to_dict() for reminder in service.list_testing_reminders(application_id)]

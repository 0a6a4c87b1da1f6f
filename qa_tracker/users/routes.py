"""
Authentication and QA user API routes.

``auth_router`` is mounted at /auth, ``router`` at /qa-users.
"""

from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.errors import (
    AuthenticationError,
    AuthorizationError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from ..core.security import create_access_token, get_password_hash, verify_password
from ..db.models import UserModel
from ..db.repositories import ApplicationRepository, UserRepository
from ..dependencies import (
    get_current_user,
    get_db,
    get_email_sender,
    get_settings_dep,
    get_whatsapp_sender,
    require_admin,
)
from ..enums import Role
from ..notifications import templates
from ..notifications.channels import EmailSender, WhatsAppSender
from .schemas import LoginRequest, PreferencesUpdate, ProfileUpdate, RegisterRequest

logger = structlog.get_logger()

auth_router = APIRouter(prefix="/auth", tags=["auth"])
router = APIRouter(prefix="/qa-users", tags=["qa-users"])


# =============================================================================
# Auth
# =============================================================================


@auth_router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> Dict[str, Any]:
    """Register an admin or QA user. QA users must give a WhatsApp number."""
    users = UserRepository(db)
    email = body.email.strip().lower()

    if users.get_by_email(email) is not None:
        raise ValidationError("User already exists")
    if body.role == Role.QA and not body.whatsapp_number:
        raise ValidationError("A WhatsApp number is required for QA users")
    if body.role == Role.ADMIN and not settings.allow_admin_registration:
        raise AuthorizationError("Admin registration is disabled")

    user = users.add(
        UserModel(
            email=email,
            password_hash=get_password_hash(body.password, settings.bcrypt_rounds),
            name=body.name,
            role=body.role.value,
            whatsapp_number=body.whatsapp_number or None,
            notify_email=True,
            notify_whatsapp=True,
        )
    )
    logger.info("user_registered", user_id=user.id, role=user.role)
    return {"message": "User registered successfully", "user": user.to_dict()}


@auth_router.post("/login")
async def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> Dict[str, Any]:
    user = UserRepository(db).get_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("login_failed", email=body.email.strip().lower())
        raise AuthenticationError("Invalid credentials")

    token = create_access_token(user.id, user.role, settings)
    logger.info("login_succeeded", user_id=user.id)
    return {
        "token": token,
        "user": {"id": user.id, "email": user.email, "name": user.name, "role": user.role},
    }


# =============================================================================
# QA users
# =============================================================================


@router.get("")
async def list_qa_users(
    db: Session = Depends(get_db),
    _: UserModel = Depends(require_admin),
) -> List[Dict[str, Any]]:
    return [user.to_dict() for user in UserRepository(db).list_by_role(Role.QA)]


@router.get("/my-applications")
async def my_applications(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Applications the current user is assigned to."""
    return [application.to_dict() for application in ApplicationRepository(db).list_for_qa(user)]


@router.get("/profile")
async def get_profile(user: UserModel = Depends(get_current_user)) -> Dict[str, Any]:
    return user.to_dict()


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    if body.name is not None:
        user.name = body.name
    if body.whatsapp_number is not None:
        if not body.whatsapp_number and user.role == Role.QA.value:
            raise ValidationError("A WhatsApp number is required for QA users")
        user.whatsapp_number = body.whatsapp_number or None
    return UserRepository(db).save(user).to_dict()


@router.get("/preferences")
async def get_preferences(user: UserModel = Depends(get_current_user)) -> Dict[str, bool]:
    return {"email": user.notify_email, "whatsapp": user.notify_whatsapp}


@router.patch("/preferences")
async def update_preferences(
    body: PreferencesUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
) -> Dict[str, bool]:
    if body.email is not None:
        user.notify_email = body.email
    if body.whatsapp is not None:
        user.notify_whatsapp = body.whatsapp
    user = UserRepository(db).save(user)
    logger.info(
        "notification_preferences_updated",
        user_id=user.id,
        email=user.notify_email,
        whatsapp=user.notify_whatsapp,
    )
    return {"email": user.notify_email, "whatsapp": user.notify_whatsapp}


@router.post("/test-notifications/email")
async def send_test_email(
    user: UserModel = Depends(get_current_user),
    sender: EmailSender = Depends(get_email_sender),
) -> Dict[str, Any]:
    """Send a test email to the current user."""
    message = templates.channel_check(user.name, "email")
    if not await sender.send(user.email, message.subject, message.text, message.html):
        raise InfrastructureError("Email channel is not configured")
    return {"message": "Test email sent", "to": user.email}


@router.post("/test-notifications/whatsapp")
async def send_test_whatsapp(
    user: UserModel = Depends(get_current_user),
    sender: WhatsAppSender = Depends(get_whatsapp_sender),
) -> Dict[str, Any]:
    """Send a test WhatsApp message to the current user."""
    if not user.whatsapp_number:
        raise ValidationError("No WhatsApp number on your profile")
    message = templates.channel_check(user.name, "WhatsApp")
    if not await sender.send(user.whatsapp_number, message.text):
        raise InfrastructureError("WhatsApp channel is not configured")
    return {"message": "Test WhatsApp message sent", "to": user.whatsapp_number}


@router.delete("/{user_id}")
async def delete_qa_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: UserModel = Depends(require_admin),
) -> Dict[str, Any]:
    """Delete a QA user and unassign it from every application."""
    users = UserRepository(db)
    user = users.get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if user.role != Role.QA.value:
        raise ValidationError("Only QA users can be deleted")

    unassigned = users.delete_qa(user)
    logger.info(
        "qa_user_deleted",
        user_id=user_id,
        deleted_by=admin.id,
        unassigned_from=unassigned,
    )
    return {"message": "QA user deleted"}

"""FastAPI dependencies: database session, current user and app services."""

from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import Settings
from .core.errors import AuthenticationError, AuthorizationError
from .core.security import decode_access_token
from .db.models import UserModel
from .notifications.channels import EmailSender, WhatsAppSender
from .notifications.ports import NotifierPort
from .realtime.presence import PresenceHub

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def load_user_from_token(db: Session, token: str, settings: Settings) -> UserModel:
    """Resolve a bearer token to a user.

    Raises:
        AuthenticationError: if the token is invalid or its user no longer exists.
    """
    payload = decode_access_token(token, settings)
    user = db.get(UserModel, payload["sub"])
    if user is None:
        raise AuthenticationError("User not found")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> UserModel:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return load_user_from_token(db, credentials.credentials, settings)


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


def get_notifier(request: Request) -> NotifierPort:
    return request.app.state.notifier


def get_presence(request: Request) -> PresenceHub:
    return request.app.state.presence


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_whatsapp_sender(request: Request) -> WhatsAppSender:
    return request.app.state.whatsapp_sender

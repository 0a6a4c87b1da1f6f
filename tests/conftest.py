"""Test configuration and fixtures."""

from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from qa_tracker.api import create_app
from qa_tracker.config import Settings
from qa_tracker.core.security import create_access_token, get_password_hash
from qa_tracker.db import models  # noqa: F401
from qa_tracker.db.base import Base, create_db_engine, get_session_local
from qa_tracker.db.models import ApplicationModel, UserModel
from qa_tracker.enums import Role

TEST_PASSWORD = "secret123"


class RecordingNotifier:
    """Notifier that records hook calls instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail = fail

    def _record(self, hook: str, *args: Any) -> None:
        self.calls.append((hook, args))
        if self.fail:
            raise RuntimeError(f"{hook} failed")

    def bug_pending_test(self, bug_id: str) -> None:
        self._record("bug_pending_test", bug_id)

    def tester_decision(self, bug_id: str, decision: str, comment: str) -> None:
        self._record("tester_decision", bug_id, decision, comment)

    def version_update(
        self, application_id: str, previous_version: str, new_version: str, changelog: str
    ) -> None:
        self._record("version_update", application_id, previous_version, new_version, changelog)

    def admin_comment(self, bug_id: str, comment: str, admin_name: str) -> None:
        self._record("admin_comment", bug_id, comment, admin_name)

    def testing_reminder(
        self, application_id: str, sender_name: str, message: Optional[str]
    ) -> None:
        self._record("testing_reminder", application_id, sender_name, message)

    def hooks(self) -> List[str]:
        return [hook for hook, _ in self.calls]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        log_format="console",
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    session = get_session_local(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def app(settings, engine, notifier) -> FastAPI:
    application = create_app(settings, engine=engine)
    application.state.notifier = notifier
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(db) -> Callable[..., UserModel]:
    """Factory that inserts a user directly into the database."""
    counter = {"n": 0}

    def _make_user(
        role: Role = Role.QA,
        name: Optional[str] = None,
        email: Optional[str] = None,
        whatsapp_number: Optional[str] = "+57 300 000 0000",
        **fields: Any,
    ) -> UserModel:
        counter["n"] += 1
        user = UserModel(
            email=email or f"{role.value}{counter['n']}@example.com",
            password_hash=get_password_hash(TEST_PASSWORD, 4),
            name=name or f"{role.value.upper()} User {counter['n']}",
            role=role.value,
            whatsapp_number=whatsapp_number,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_application(db) -> Callable[..., ApplicationModel]:
    counter = {"n": 0}

    def _make_application(
        qas: Optional[List[UserModel]] = None, version: str = "1.0.0", **fields: Any
    ) -> ApplicationModel:
        counter["n"] += 1
        application = ApplicationModel(
            name=fields.pop("name", f"App {counter['n']}"),
            description=fields.pop("description", "Application under test"),
            version=version,
            platform=fields.pop("platform", "web"),
            **fields,
        )
        application.assigned_qas = list(qas or [])
        db.add(application)
        db.commit()
        db.refresh(application)
        return application

    return _make_application


@pytest.fixture
def auth_headers(settings) -> Callable[[UserModel], Dict[str, str]]:
    def _auth_headers(user: UserModel) -> Dict[str, str]:
        token = create_access_token(user.id, user.role, settings)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def admin(make_user) -> UserModel:
    return make_user(Role.ADMIN, name="Alice Admin", email="admin@example.com")


@pytest.fixture
def qa(make_user) -> UserModel:
    return make_user(Role.QA, name="Quinn Tester", email="quinn@example.com")


def bug_payload(application_id: str, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "title": "Login button does nothing",
        "description": "Clicking login has no effect",
        "steps_to_reproduce": "1. Open /login\n2. Click the button",
        "expected_behavior": "User is logged in",
        "actual_behavior": "Nothing happens",
        "severity": "high",
        "environment": "Chrome 120 / macOS",
        "application_id": application_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def bug_fields() -> Callable[..., Dict[str, Any]]:
    return bug_payload

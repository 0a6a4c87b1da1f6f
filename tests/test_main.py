from __future__ import annotations

from qa_tracker.core.errors import InvalidTransitionError, NotFoundError


def test_health(client):
    """Test the /health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_version(client):
    """Test the /version endpoint."""
    response = client.get("/version")
    assert response.status_code == 200
    # The version comes from the installed package metadata
    assert isinstance(response.json()["version"], str)


def test_unknown_route_is_404(client):
    assert client.get("/api/nope").status_code == 404


def test_validation_errors_use_error_format(client):
    response = client.post("/api/auth/login", json={"email": "a@example.com"})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation_error"
    assert "password" in body["detail"]


def test_error_serialization():
    assert NotFoundError("Bug report", "x").to_dict() == {
        "detail": "Bug report not found",
        "code": "not_found",
    }
    error = InvalidTransitionError("open", "pending-test")
    assert error.status_code == 400
    assert error.message == "Cannot transition from 'open' to 'pending-test'"

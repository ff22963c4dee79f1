# tests/test_identity.py
"""
Unit tests for the Identity model and the session dependency.

Tests do NOT require database access.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from auth_service.auth.identity import Identity
from auth_service.core.errors import AppError
from auth_service.core.security import TokenClaims, create_access_token
from auth_service.dependencies.auth import get_current_identity
from auth_service.main import app_error_handler


# ---------------------------------------------------------------------------
# Tests: Identity
# ---------------------------------------------------------------------------


def test_identity_from_claims():
    claims = TokenClaims(
        user_id=7,
        email="user@example.com",
        role="admin",
        expires_at=datetime.now(timezone.utc),
    )
    identity = Identity.from_claims(claims)

    assert identity.id == 7
    assert identity.email == "user@example.com"
    assert identity.role == "admin"
    assert identity.to_dict() == {"id": 7, "email": "user@example.com", "role": "admin"}


def test_identity_is_immutable():
    identity = Identity(id=1, email="a@b.com", role="user")
    with pytest.raises(AttributeError):
        identity.role = "admin"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Tests: request.state.identity
# ---------------------------------------------------------------------------


@pytest.fixture()
def whoami_client():
    app = FastAPI()
    app.add_exception_handler(AppError, app_error_handler)

    @app.get("/whoami")
    def _whoami(request: Request, identity: Identity = Depends(get_current_identity)):
        attached = request.state.identity
        return {"same": attached is identity, "identity": attached.to_dict()}

    return TestClient(app)


def test_identity_attached_to_request_state(whoami_client):
    token = create_access_token(user_id=5, email="five@example.com", role="user")
    res = whoami_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 200
    assert res.json() == {"same": True, "identity": {"id": 5, "email": "five@example.com", "role": "user"}}


def test_no_identity_attached_on_failure(whoami_client):
    res = whoami_client.get("/whoami", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"

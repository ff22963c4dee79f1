from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError


def _assert_error_shape(res, *, error: str | None = None):
    data = res.json()
    assert isinstance(data, dict)
    assert isinstance(data.get("error"), str) and data["error"]
    assert isinstance(data.get("message"), str) and data["message"]
    if error is not None:
        assert data["error"] == error


def test_error_shape_400_missing_fields(client):
    res = client.post("/api/auth/login", json={"email": "x@example.com"})
    assert res.status_code == 400
    _assert_error_shape(res, error="VALIDATION_ERROR")


def test_error_shape_400_wrong_types_do_not_echo_input(client):
    res = client.post("/api/auth/login", json={"email": "x@example.com", "password": 987654321})
    assert res.status_code == 400
    _assert_error_shape(res, error="VALIDATION_ERROR")
    errors = res.json()["details"]["errors"]
    assert isinstance(errors, list) and errors
    assert all("input" not in e for e in errors)
    assert "987654321" not in res.text


def test_error_shape_400_malformed_json(client):
    res = client.post(
        "/api/auth/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    _assert_error_shape(res, error="VALIDATION_ERROR")


def test_error_shape_401_me_without_session(client):
    client.cookies.clear()
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    _assert_error_shape(res, error="UNAUTHORIZED")


def test_error_shape_409_duplicate(client, users):
    res = client.post("/api/auth/register", json={"email": "test@example.com", "password": "whatever"})
    assert res.status_code == 409
    _assert_error_shape(res, error="CONFLICT")


def test_error_shape_404_unknown_route(client):
    res = client.get("/api/auth/nope")
    assert res.status_code == 404
    _assert_error_shape(res, error="NOT_FOUND")


def test_error_shape_500_store_failure_on_login_hides_detail(client, monkeypatch, caplog):
    from auth_service.routes import auth as auth_routes

    def _boom(db, email, password):
        raise OperationalError("SELECT * FROM users", {}, Exception("connection refused to db-secret-host"))

    monkeypatch.setattr(auth_routes, "verify_user_credentials", _boom)

    res = client.post("/api/auth/login", json={"email": "x@example.com", "password": "secret123"})
    assert res.status_code == 500
    _assert_error_shape(res, error="INTERNAL_ERROR")
    assert "db-secret-host" not in res.text
    # Detail is logged server-side only.
    assert any("Database error during login" in r.getMessage() for r in caplog.records)


def test_error_shape_500_store_failure_on_register(client, monkeypatch):
    from auth_service.routes import auth as auth_routes

    def _boom(db, email):
        raise OperationalError("SELECT * FROM users", {}, Exception("pool exhausted"))

    monkeypatch.setattr(auth_routes, "get_user_by_email", _boom)

    res = client.post("/api/auth/register", json={"email": "x@example.com", "password": "secret123"})
    assert res.status_code == 500
    _assert_error_shape(res, error="INTERNAL_ERROR")
    assert "pool exhausted" not in res.text


def test_error_shape_500_unexpected_exception_is_generic_and_logged(app, monkeypatch, caplog):
    from auth_service.routes import auth as auth_routes

    def _boom(db, email, password):
        raise RuntimeError("secret-internal-detail")

    monkeypatch.setattr(auth_routes, "verify_user_credentials", _boom)

    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.post("/api/auth/login", json={"email": "x@example.com", "password": "secret123"})

    assert res.status_code == 500
    _assert_error_shape(res, error="INTERNAL_ERROR")
    assert res.json()["message"] == "Internal server error"
    assert "secret-internal-detail" not in res.text
    # Still wrapped by the security headers middleware.
    assert res.headers["x-content-type-options"] == "nosniff"

    records = [r for r in caplog.records if "Unhandled error on POST /api/auth/login" in r.getMessage()]
    assert records
    assert records[0].exc_info is not None
    assert isinstance(records[0].exc_info[1], RuntimeError)

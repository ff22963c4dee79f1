# auth_service/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth_service.auth.identity import Identity
from auth_service.core.config import settings
from auth_service.core.database import get_db
from auth_service.core.errors import AuthError, ConflictError, InternalError, ValidationError
from auth_service.core.security import create_access_token
from auth_service.dependencies.auth import get_current_identity
from auth_service.dependencies.rate_limit import require_rate_limit
from auth_service.models.user import User
from auth_service.schemas.auth import AuthOut, LoginIn, MessageOut, RegisterIn
from auth_service.schemas.user import MeOut, UserOut
from auth_service.services.users import (
    EmailAlreadyRegisteredError,
    create_user,
    get_user_by_email,
    normalize_email,
    verify_user_credentials,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# register + login share one budget per client.
auth_rate_limit = require_rate_limit("auth")

MISSING_CREDENTIALS_MESSAGE = "Email and password are required"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_PASSWORD_MESSAGE = "Password contains unsupported characters"


# -----------------------------
# Session cookie
# -----------------------------
def cookie_samesite() -> str:
    v = str(settings.AUTH_COOKIE_SAMESITE).lower().strip()
    if v not in {"lax", "strict"}:
        return "strict"
    return v


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_prod,
        samesite=cookie_samesite(),
        max_age=settings.access_token_max_age_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_prod,
        samesite=cookie_samesite(),
    )


def issue_session(response: Response, user: User) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    set_session_cookie(response, token)
    return {"user": UserOut.model_validate(user), "token": token}


def _require_credentials(email: str | None, password: str | None) -> str:
    normalized = normalize_email(email)
    if not normalized or not password:
        raise ValidationError(MISSING_CREDENTIALS_MESSAGE)
    return normalized


# -----------------------------
# Routes
# -----------------------------
@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    email = _require_credentials(payload.email, payload.password)

    try:
        if get_user_by_email(db, email) is not None:
            raise ConflictError("Email already registered")
        user = create_user(db, email=email, password=payload.password, name=payload.name)
    except EmailAlreadyRegisteredError:
        # Lost a race with a concurrent registration; the unique index caught it.
        raise ConflictError("Email already registered")
    except ValueError:
        # Input the hasher refuses (e.g. NUL bytes under bcrypt).
        raise ValidationError(INVALID_PASSWORD_MESSAGE)
    except SQLAlchemyError:
        logger.exception("Database error during registration")
        raise InternalError("Internal error during registration")

    logger.info("Registered user id=%s", user.id)
    return issue_session(response, user)


@router.post("/login", response_model=AuthOut, dependencies=[Depends(auth_rate_limit)])
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = _require_credentials(payload.email, payload.password)

    try:
        user = verify_user_credentials(db, email, payload.password)
    except SQLAlchemyError:
        logger.exception("Database error during login")
        raise InternalError("Internal error during login")

    # Same message for unknown email and wrong password.
    if user is None:
        raise AuthError(INVALID_CREDENTIALS_MESSAGE)

    logger.info("User id=%s logged in", user.id)
    return issue_session(response, user)


@router.get("/me", response_model=MeOut)
def me(identity: Identity = Depends(get_current_identity)):
    return {"user": identity.to_dict()}


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    """
    Clears the session cookie. The token itself stays valid until it expires.
    """
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}

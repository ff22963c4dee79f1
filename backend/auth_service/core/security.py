# auth_service/core/security.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from auth_service.core.config import settings


# -------------------------
# Exceptions
# -------------------------
class TokenVerificationError(Exception):
    """Base exception for access token verification failures."""

    pass


class TokenExpiredError(TokenVerificationError):
    """Raised when the token is past its expiry."""

    pass


class InvalidTokenError(TokenVerificationError):
    """Raised for bad signatures, malformed tokens and missing claims."""

    pass


# -------------------------
# Password hashing
# -------------------------
_pwd_contexts: dict[int, CryptContext] = {}


def _pwd_context() -> CryptContext:
    rounds = int(settings.BCRYPT_ROUNDS)
    ctx = _pwd_contexts.get(rounds)
    if ctx is None:
        ctx = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        _pwd_contexts[rounds] = ctx
    return ctx


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd_context().hash(password)


_dummy_hashes: dict[int, str] = {}


def dummy_password_hash() -> str:
    """A valid hash at the configured cost that no real password matches."""
    rounds = int(settings.BCRYPT_ROUNDS)
    value = _dummy_hashes.get(rounds)
    if value is None:
        value = _pwd_context().hash("dummy-password-for-unknown-accounts")
        _dummy_hashes[rounds] = value
    return value


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd_context().verify(password, password_hash)
    except ValueError:
        # Unrecognized / malformed stored hash.
        return False


# -------------------------
# JWT helpers
# -------------------------
@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    role: str
    expires_at: datetime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _require_jwt_secret() -> str:
    secret = (settings.JWT_SECRET or "").strip()
    if not secret:
        raise RuntimeError("JWT_SECRET must be set (auth is required).")
    return secret


def create_access_token(
    *,
    user_id: int,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Session token used for API auth: Authorization: Bearer <token> or the session cookie.
    """
    secret = _require_jwt_secret()

    now = _now_utc()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    exp = now + expires_delta

    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }

    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify signature + expiry and return typed claims.

    Raises TokenExpiredError or InvalidTokenError; no HTTP concerns here.
    """
    secret = _require_jwt_secret()
    if not token:
        raise InvalidTokenError("token_blank")

    try:
        payload: dict[str, Any] = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("token_expired") from exc
    except JWTError as exc:
        raise InvalidTokenError("token_invalid") from exc

    sub = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    exp = payload.get("exp")
    if not sub or not email or not role or exp is None:
        raise InvalidTokenError("token_missing_claims")

    try:
        user_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("token_sub_not_int") from exc

    return TokenClaims(
        user_id=user_id,
        email=str(email),
        role=str(role),
        expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
    )

# auth_service/services/users.py
"""
Credential store.

Responsibilities:
- Creating users (password hashed here, never accepted pre-hashed)
- User lookup by email or id
- Credential verification for login
- Persisting 2FA placeholder fields

Reads return the full ORM row (hash included). Externalize users through
schemas.user.UserOut only.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth_service.core.security import dummy_password_hash, hash_password, verify_password
from auth_service.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"
_ROLE_RE = re.compile(r"^[a-z][a-z0-9_-]{0,31}$")


class EmailAlreadyRegisteredError(Exception):
    """Raised when the unique email index rejects an insert."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email already registered: {email}")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_name(name: str | None) -> str | None:
    if name is None:
        return None
    clean = name.strip()
    return clean[:100] or None


def normalize_role(role: str | None) -> str:
    value = (role or DEFAULT_ROLE).strip().lower()
    if not _ROLE_RE.match(value):
        raise ValueError("invalid_role")
    return value


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Look up a user by email address."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(User).filter(User.email == normalized).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """Look up a user by primary key."""
    return db.query(User).filter(User.id == int(user_id)).first()


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    name: str | None = None,
    role: str = DEFAULT_ROLE,
) -> User:
    """
    Insert a new user and commit.

    Raises:
        ValueError: blank email/password or invalid role
        EmailAlreadyRegisteredError: email already taken
    """
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValueError("email_blank")
    if not password:
        raise ValueError("password_blank")

    user = User(
        email=normalized_email,
        password_hash=hash_password(password),
        name=normalize_name(name),
        role=normalize_role(role),
        two_factor_enabled=False,
        two_factor_secret=None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise EmailAlreadyRegisteredError(normalized_email) from exc
    db.refresh(user)

    logger.info("Created user id=%s role=%s", user.id, user.role)
    return user


def verify_user_credentials(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user only if the email exists and the password matches."""
    user = get_user_by_email(db, email)
    if user is None:
        # Same bcrypt work as a wrong password, so timing does not reveal the miss.
        verify_password(password, dummy_password_hash())
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def update_two_factor(
    db: Session,
    user_id: int,
    *,
    enabled: bool,
    secret: str | None,
) -> Optional[User]:
    user = get_user_by_id(db, user_id)
    if user is None:
        return None

    user.two_factor_enabled = bool(enabled)
    user.two_factor_secret = secret
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

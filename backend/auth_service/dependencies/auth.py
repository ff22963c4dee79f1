# auth_service/dependencies/auth.py
from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth_service.auth.identity import Identity
from auth_service.core.config import settings
from auth_service.core.errors import AuthError
from auth_service.core.security import TokenExpiredError, TokenVerificationError, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_ABSENT_MESSAGE = "Unauthorized: token absent"
TOKEN_INVALID_MESSAGE = "Unauthorized: invalid or expired token"


def extract_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    # Prefer Bearer token when explicitly provided.
    if creds is not None and creds.scheme.lower() == "bearer" and creds.credentials:
        return creds.credentials.strip() or None

    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token.strip() or None
    return None


def get_current_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """
    Validates:
      - Authorization: Bearer <token>, falling back to the session cookie
      - token signature + exp + required claims
    Returns:
      - Identity (also attached to request.state.identity)
    """
    request.state.identity = None

    token = extract_token(request, creds)
    if not token:
        raise AuthError(TOKEN_ABSENT_MESSAGE)

    try:
        claims = decode_access_token(token)
    except TokenExpiredError:
        logger.info("Rejected expired session token")
        raise AuthError(TOKEN_INVALID_MESSAGE)
    except TokenVerificationError as exc:
        logger.warning("Rejected invalid session token: %s", exc)
        raise AuthError(TOKEN_INVALID_MESSAGE)

    identity = Identity.from_claims(claims)
    request.state.identity = identity
    return identity

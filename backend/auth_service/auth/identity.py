# auth_service/auth/identity.py
"""
Per-request authenticated identity.

Built only from a verified session token and attached to
``request.state.identity`` by the session dependency. Handlers read it
instead of decoding tokens themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from auth_service.core.security import TokenClaims


@dataclass(frozen=True)
class Identity:
    """
    Attributes:
        id: Internal user id (token ``sub``).
        email: Email claim at the time the token was minted.
        role: Role claim at the time the token was minted.
    """

    id: int
    email: str
    role: str

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> Identity:
        return cls(id=claims.user_id, email=claims.email, role=claims.role)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "role": self.role}

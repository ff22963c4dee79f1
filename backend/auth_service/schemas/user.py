from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    """Client-facing user. Deliberately has no password hash / 2FA secret field."""

    id: int
    email: str
    name: str | None = None
    role: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class IdentityOut(BaseModel):
    id: int
    email: str
    role: str


class MeOut(BaseModel):
    user: IdentityOut

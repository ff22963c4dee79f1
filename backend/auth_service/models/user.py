# auth_service/models/user.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from auth_service.core.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Stored normalized (stripped + lower-cased) by services.users.
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    role = Column(String(32), nullable=False, server_default="user", default="user")

    # Persisted for a future 2FA flow; no endpoint reads them yet.
    two_factor_enabled = Column(Boolean, nullable=False, server_default="false", default=False)
    two_factor_secret = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"

from pydantic import BaseModel, Field

from auth_service.schemas.user import UserOut


# Fields are optional so a missing value surfaces as our own 400, not a 422.
class RegisterIn(BaseModel):
    email: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)
    name: str | None = Field(default=None, max_length=100)


class LoginIn(BaseModel):
    email: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)


class AuthOut(BaseModel):
    user: UserOut
    token: str


class MessageOut(BaseModel):
    message: str


class HealthOut(BaseModel):
    status: str
    env: str

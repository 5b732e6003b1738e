"""Auth domain models: the user, login/registration payloads, auth responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from taskboard_shared.models import WireModel


class User(WireModel):
    """The authenticated account as the backend reports it.

    Never carries the password hash; the backend strips it before responding.
    """

    id: int | str
    email: str
    created_at: datetime | None = Field(default=None, alias="createdAt")


class LoginCredentials(BaseModel):
    email: str
    password: str


class RegisterCredentials(BaseModel):
    """Registration form input.

    ``confirm_password`` is checked client-side and never sent to the backend.
    """

    email: str
    password: str
    confirm_password: str | None = None

    def to_payload(self) -> dict[str, str]:
        return {"email": self.email, "password": self.password}


class AuthResponse(BaseModel):
    """Returned by login and register: the user plus a fresh bearer token."""

    user: User
    token: str

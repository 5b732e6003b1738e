"""AuthState: the single authoritative picture of who is logged in."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from taskboard_shared.auth_models import User


class AuthPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    SESSION_CHECK_PENDING = "session_check_pending"


_LOADING_PHASES = frozenset({AuthPhase.AUTHENTICATING, AuthPhase.SESSION_CHECK_PENDING})


class AuthState(BaseModel):
    """Immutable snapshot of the session.

    Built only through the constructors below, so ``is_authenticated`` and
    ``is_loading`` always agree with ``phase``: a state is authenticated
    exactly when it has a user, a token, and a successful credential check
    behind it.
    """

    model_config = ConfigDict(frozen=True)

    phase: AuthPhase
    user: User | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return (
            self.phase is AuthPhase.AUTHENTICATED
            and self.user is not None
            and self.token is not None
        )

    @property
    def is_loading(self) -> bool:
        return self.phase in _LOADING_PHASES

    @classmethod
    def unauthenticated(cls) -> AuthState:
        return cls(phase=AuthPhase.UNAUTHENTICATED)

    @classmethod
    def checking(cls, token: str | None = None) -> AuthState:
        return cls(phase=AuthPhase.SESSION_CHECK_PENDING, token=token)

    @classmethod
    def authenticating(cls) -> AuthState:
        return cls(phase=AuthPhase.AUTHENTICATING)

    @classmethod
    def authenticated(cls, user: User, token: str) -> AuthState:
        return cls(phase=AuthPhase.AUTHENTICATED, user=user, token=token)

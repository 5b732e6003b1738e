"""Auth Session Manager: login, registration, logout and the authoritative AuthState."""

from taskboard_auth.session import AuthSessionManager, AuthTransitionInProgress
from taskboard_auth.state import AuthPhase, AuthState

__all__ = ["AuthPhase", "AuthSessionManager", "AuthState", "AuthTransitionInProgress"]

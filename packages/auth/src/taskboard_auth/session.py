"""Auth Session Manager: the only component that changes AuthState.

Transitions:

    SESSION_CHECK_PENDING -> AUTHENTICATED     credential accepted by /auth/me
    SESSION_CHECK_PENDING -> UNAUTHENTICATED   no credential, or it was rejected
    UNAUTHENTICATED       -> AUTHENTICATING    login or register called
    AUTHENTICATING        -> AUTHENTICATED     backend returned a user and token
    AUTHENTICATING        -> UNAUTHENTICATED   backend refused, or the call failed
    AUTHENTICATED         -> UNAUTHENTICATED   logout, or a 401 on a regular call

Transitions run one at a time behind an asyncio.Lock. A login or register
that arrives while another transition holds the lock is rejected with
AuthTransitionInProgress rather than queued: the first caller wins and the
second never gets to interleave its result into the shared state. Logout
waits for the lock instead, so it always runs after an in-flight login
settles.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from taskboard_session_store import SessionStore
from taskboard_shared.auth_models import (
    AuthResponse,
    LoginCredentials,
    RegisterCredentials,
    User,
)
from taskboard_shared.errors import (
    AccountAlreadyExists,
    Conflict,
    GatewayError,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from taskboard_shared.models import FieldError
from taskboard_shared.validation import (
    validate_login,
    validate_password,
    validate_registration,
)

from taskboard_auth.state import AuthPhase, AuthState

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthState], None]


class AuthTransitionInProgress(Exception):
    """Raised when login/register is called while another transition runs."""


class AuthGateway(Protocol):
    async def login(self, credentials: LoginCredentials) -> AuthResponse: ...

    async def register(self, credentials: RegisterCredentials) -> AuthResponse: ...

    async def logout(self) -> None: ...

    async def get_current_user(self) -> User: ...

    async def change_password(self, current_password: str, new_password: str) -> None: ...


class CachePurger(Protocol):
    def clear(self) -> None: ...


class AuthSessionManager:
    """Single authority for AuthState; mediates every session transition."""

    def __init__(
        self,
        gateway: AuthGateway,
        session_store: SessionStore,
        cache: CachePurger | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = session_store
        self._cache = cache
        self._state = AuthState.checking(session_store.get())
        self._transition_lock = asyncio.Lock()
        self._listeners: list[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Call ``listener`` with every new AuthState. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: AuthState) -> None:
        if state.phase is not self._state.phase:
            logger.info(f"Auth: {self._state.phase.value} -> {state.phase.value}")
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _end_session(self) -> None:
        self._store.clear()
        if self._cache is not None:
            self._cache.clear()
        self._set_state(AuthState.unauthenticated())

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def initialize(self) -> AuthState:
        """Resolve the persisted credential, if any, into a session.

        A credential the backend rejects is dropped silently: the user simply
        starts signed out. Any other failure (server down, network) leaves the
        credential in place for the next attempt and is re-raised.
        """
        async with self._transition_lock:
            token = self._store.get()
            if token is None:
                self._set_state(AuthState.unauthenticated())
                return self._state

            self._set_state(AuthState.checking(token))
            try:
                user = await self._gateway.get_current_user()
            except (Unauthorized, NotFound):
                logger.info("Stored credential was rejected, starting signed out")
                self._end_session()
                return self._state
            except BaseException:
                self._set_state(AuthState.unauthenticated())
                raise

            self._set_state(AuthState.authenticated(user, token))
            return self._state

    # ------------------------------------------------------------------
    # Login / register / logout
    # ------------------------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> AuthState:
        errors = validate_login(credentials.email, credentials.password)
        if errors:
            raise ValidationFailed(errors[0].message, field_errors=errors)
        return await self._authenticate("login", self._gateway.login, credentials)

    async def register(self, credentials: RegisterCredentials) -> AuthState:
        errors = validate_registration(
            credentials.email, credentials.password, credentials.confirm_password
        )
        if errors:
            raise ValidationFailed(errors[0].message, field_errors=errors)

        async def call(creds: RegisterCredentials) -> AuthResponse:
            try:
                return await self._gateway.register(creds)
            except Conflict as e:
                raise AccountAlreadyExists(
                    status_code=e.status_code, field_errors=e.field_errors
                ) from e

        return await self._authenticate("register", call, credentials)

    async def _authenticate(
        self,
        action: str,
        call: Callable[..., Awaitable[AuthResponse]],
        credentials: LoginCredentials | RegisterCredentials,
    ) -> AuthState:
        if self._transition_lock.locked():
            raise AuthTransitionInProgress(
                f"Cannot {action} while another sign-in is in progress"
            )

        async with self._transition_lock:
            self._set_state(AuthState.authenticating())
            try:
                response = await call(credentials)
            except BaseException as e:
                if isinstance(e, GatewayError):
                    logger.info(f"Auth: {action} failed: {e.message}")
                self._set_state(AuthState.unauthenticated())
                raise

            self._store.set(response.token)
            if self._cache is not None:
                self._cache.clear()
            self._set_state(AuthState.authenticated(response.user, response.token))
            return self._state

    async def logout(self) -> None:
        """End the session locally, telling the server on a best-effort basis."""
        async with self._transition_lock:
            if self._store.has():
                try:
                    await self._gateway.logout()
                except GatewayError as e:
                    logger.warning(f"Server logout failed ({e.message}), clearing local session anyway")
            self._end_session()

    # ------------------------------------------------------------------
    # In-session updates
    # ------------------------------------------------------------------

    def update_user(self, user: User) -> None:
        """Replace the cached user after a profile-affecting operation."""
        if not self._state.is_authenticated or self._state.token is None:
            logger.warning("Ignoring user update: no authenticated session")
            return
        self._set_state(AuthState.authenticated(user, self._state.token))

    def handle_unauthorized(self) -> None:
        """The backend rejected the credential on a regular call."""
        if self._state.phase is AuthPhase.AUTHENTICATING:
            # The in-flight sign-in will install a fresh credential.
            return
        if self._state.phase is AuthPhase.UNAUTHENTICATED and not self._store.has():
            return
        logger.info("Credential rejected by the server, ending session")
        self._end_session()

    async def change_password(self, current_password: str, new_password: str) -> None:
        if not self._state.is_authenticated:
            raise Unauthorized("Sign in to change your password")

        errors = validate_password(new_password, field="new_password")
        if not current_password:
            errors.insert(
                0, FieldError(field="current_password", message="Current password is required")
            )
        if errors:
            raise ValidationFailed(errors[0].message, field_errors=errors)

        await self._gateway.change_password(current_password, new_password)

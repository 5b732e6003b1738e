"""Remote Gateway: typed async client for the Taskboard HTTP API.

Stateless apart from the HTTP connection pool. On every call except login and
register it reads the current credential from the SessionStore and sends it as
``Authorization: Bearer <token>``; it never writes the store. Owning the
credential lifecycle is the session manager's job.

Cross-cutting behavior handled here so callers don't have to:
  - Retry with exponential backoff via tenacity, for connection failures only
    (the request never reached the server, so replaying is safe even for POST)
  - Unwrapping the backend's ``{success, message, data}`` envelope
  - Mapping HTTP failures to the typed errors in taskboard_shared.errors
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
from taskboard_session_store import SessionStore
from taskboard_shared.auth_models import (
    AuthResponse,
    LoginCredentials,
    RegisterCredentials,
    User,
)
from taskboard_shared.config import ClientSettings
from taskboard_shared.errors import (
    NetworkFailure,
    ServerError,
    Unauthorized,
    error_for_status,
)
from taskboard_shared.models import FieldError, unwrap_envelope
from taskboard_shared.task_models import (
    Task,
    TaskCreate,
    TaskPage,
    TaskQuery,
    TaskStats,
    TaskUpdate,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from taskboard_gateway import routes

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

# Raised by model_validate / from_payload on a body of the wrong shape.
MALFORMED_PAYLOAD_ERRORS = (ValueError, TypeError, KeyError)


def _error_details(body: Any) -> tuple[str | None, list[FieldError]]:
    """Pull the server's message and field errors out of an error body."""
    if not isinstance(body, dict):
        return None, []

    message = body.get("message") or body.get("error")
    field_errors: list[FieldError] = []
    for item in body.get("errors") or []:
        if not isinstance(item, dict):
            continue
        field = item.get("field") or item.get("path") or item.get("param") or "__root__"
        text = item.get("message") or item.get("msg") or ""
        field_errors.append(FieldError(field=str(field), message=str(text)))
    return (str(message) if message else None), field_errors


def _parse_user(data: Any) -> User:
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        data = data["user"]
    return User.model_validate(data)


def _parse_page(body: Any) -> TaskPage:
    if isinstance(body, dict) and "success" in body and isinstance(body.get("data"), dict):
        body = body["data"]
    return TaskPage.from_payload(body)


class RemoteGateway:
    """Async request/response client for auth and task operations."""

    def __init__(
        self,
        settings: ClientSettings,
        session_store: SessionStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.session_store = session_store
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.request_count: int = 0

    async def __aenter__(self) -> RemoteGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_url,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.settings.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            wait=wait_exponential(multiplier=0.5, max=self.settings.retry_max_wait),
            stop=stop_after_attempt(max(1, self.settings.retry_attempts)),
            reraise=True,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        unwrap: bool = True,
        parse: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Send one API call and return the unwrapped payload, parsed by ``parse``.

        Raises a GatewayError subclass for every non-2xx status, NetworkFailure
        when the transport gives up, and ServerError when a 2xx body does not
        have the expected shape.
        """
        headers: dict[str, str] = {}
        if path not in routes.UNAUTHENTICATED_PATHS:
            token = self.session_store.get()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        client = self._get_client()
        try:
            async for attempt in self._retrying():
                with attempt:
                    self.request_count += 1
                    response = await client.request(
                        method, path, json=json, params=params, headers=headers
                    )
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed at transport level: {e!r}")
            raise NetworkFailure(f"Unable to reach the server: {e}") from e

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None

        if response.is_success:
            payload = unwrap_envelope(body) if unwrap else body
            if parse is None:
                return payload
            try:
                return parse(payload)
            except MALFORMED_PAYLOAD_ERRORS as e:
                logger.warning(f"{method} {path} -> {response.status_code}: malformed body: {e}")
                raise ServerError(
                    "Unexpected response from server", status_code=response.status_code
                ) from e

        message, field_errors = _error_details(body)
        logger.info(f"{method} {path} -> {response.status_code}: {message or 'no message'}")
        raise error_for_status(response.status_code, message, field_errors)

    # ------------------------------------------------------------------
    # Auth operations
    # ------------------------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> AuthResponse:
        return await self._request(
            "POST",
            routes.login_path(),
            json=credentials.model_dump(),
            parse=AuthResponse.model_validate,
        )

    async def register(self, credentials: RegisterCredentials) -> AuthResponse:
        return await self._request(
            "POST",
            routes.register_path(),
            json=credentials.to_payload(),
            parse=AuthResponse.model_validate,
        )

    async def logout(self) -> None:
        await self._request("POST", routes.logout_path())

    async def get_current_user(self) -> User:
        """Fetch the account behind the stored credential.

        Raises Unauthorized without sending anything when no credential is
        stored.
        """
        if not self.session_store.has():
            raise Unauthorized("No session credential", status_code=401)
        return await self._request("GET", routes.current_user_path(), parse=_parse_user)

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._request(
            "POST",
            routes.change_password_path(),
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # ------------------------------------------------------------------
    # Task operations
    # ------------------------------------------------------------------

    async def list_tasks(self, query: TaskQuery | None = None) -> TaskPage:
        query = query or TaskQuery()
        return await self._request(
            "GET",
            routes.tasks_path(),
            params=query.to_params(),
            unwrap=False,
            parse=_parse_page,
        )

    async def get_task_stats(self) -> TaskStats:
        return await self._request(
            "GET", routes.task_stats_path(), parse=TaskStats.model_validate
        )

    async def get_task(self, task_id: int | str) -> Task:
        return await self._request("GET", routes.task_path(task_id), parse=Task.model_validate)

    async def create_task(self, data: TaskCreate) -> Task:
        return await self._request(
            "POST", routes.tasks_path(), json=data.to_payload(), parse=Task.model_validate
        )

    async def update_task(self, task_id: int | str, patch: TaskUpdate) -> Task:
        return await self._request(
            "PATCH",
            routes.task_path(task_id),
            json=patch.to_payload(),
            parse=Task.model_validate,
        )

    async def delete_task(self, task_id: int | str) -> None:
        await self._request("DELETE", routes.task_path(task_id))

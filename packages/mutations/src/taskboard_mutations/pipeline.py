"""Mutation Pipeline: create, update and delete tasks.

Every operation follows the same contract:

  1. Validate input client-side. Invalid input never reaches the network.
  2. Call the gateway. On failure, notify the user and return a failed
     MutationResult; the cache is not touched.
  3. On success, invalidate and refetch both the ``tasks`` and ``taskStats``
     scopes, so the visible list and the counts move together.
  4. Only then notify success and run the caller's ``on_success`` hook
     (typically closing the entry form).

Expected failures are returned as MutationResult objects rather than raised,
so a UI can render them without wrapping each action in try/except.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel
from taskboard_shared.errors import GatewayError, Unauthorized
from taskboard_shared.models import FieldError
from taskboard_shared.task_models import (
    MutationResult,
    Task,
    TaskCreate,
    TaskUpdate,
)
from taskboard_shared.validation import validate_task_input, validate_task_patch
from taskboard_task_cache import Scope

from taskboard_mutations.notifications import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

Confirm = Callable[[], bool | Awaitable[bool]]
OnSuccess = Callable[[Task], None]

CREATE_FAILED = "Failed to create task"
UPDATE_FAILED = "Failed to update task"
DELETE_FAILED = "Failed to delete task"


class TaskGateway(Protocol):
    async def create_task(self, data: TaskCreate) -> Task: ...

    async def update_task(self, task_id: int | str, patch: TaskUpdate) -> Task: ...

    async def delete_task(self, task_id: int | str) -> None: ...


class TaskCache(Protocol):
    def invalidate(self, *scopes: Scope) -> None: ...

    async def refetch(self, *scopes: Scope) -> None: ...


def _as_payload(data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


class MutationPipeline:
    """Runs one task mutation at a time through the cache protocol."""

    def __init__(
        self,
        gateway: TaskGateway,
        cache: TaskCache,
        notifier: Notifier | None = None,
        confirm: Confirm | None = None,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self._notifier = notifier or LoggingNotifier()
        self._confirm = confirm
        self._on_unauthorized = on_unauthorized

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_task(
        self,
        data: Mapping[str, Any] | TaskCreate,
        on_success: OnSuccess | None = None,
    ) -> MutationResult:
        payload = _as_payload(data)
        errors = validate_task_input(payload)
        if errors:
            return self._rejected(errors)

        try:
            task = await self._gateway.create_task(TaskCreate.model_validate(payload))
        except GatewayError as e:
            return self._failed(e, CREATE_FAILED)

        await self._sync_cache()
        return self._succeeded(task, "Task created successfully!", on_success)

    async def update_task(
        self,
        task_id: int | str,
        patch: Mapping[str, Any] | TaskUpdate,
        on_success: OnSuccess | None = None,
    ) -> MutationResult:
        payload = _as_payload(patch)
        errors = validate_task_patch(payload)
        if errors:
            return self._rejected(errors)

        try:
            task = await self._gateway.update_task(task_id, TaskUpdate.model_validate(payload))
        except GatewayError as e:
            return self._failed(e, UPDATE_FAILED)

        await self._sync_cache()
        return self._succeeded(task, "Task updated successfully!", on_success)

    async def toggle_status(self, task: Task) -> MutationResult:
        """Flip a task between pending and completed."""
        return await self.update_task(task.id, {"status": task.status.toggled()})

    async def delete_task(
        self, task_id: int | str, confirm: Confirm | None = None
    ) -> MutationResult:
        """Delete after an explicit confirmation; no confirmer means no delete."""
        confirmer = confirm or self._confirm
        if confirmer is None:
            logger.warning(f"Refusing to delete task {task_id} without a confirmation step")
            return MutationResult(
                success=False, message="Deletion requires confirmation", cancelled=True
            )

        answer = confirmer()
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            return MutationResult(success=False, message="Deletion cancelled", cancelled=True)

        try:
            await self._gateway.delete_task(task_id)
        except GatewayError as e:
            return self._failed(e, DELETE_FAILED)

        await self._sync_cache()
        message = "Task deleted successfully!"
        self._notifier.success(message)
        return MutationResult(success=True, message=message)

    # ------------------------------------------------------------------
    # Outcome handling
    # ------------------------------------------------------------------

    async def _sync_cache(self) -> None:
        """Invalidate and refetch both scopes after a confirmed mutation.

        A failed refetch does not undo the mutation's success; the scopes are
        left stale so the next read goes back to the server.
        """
        self._cache.invalidate(Scope.TASKS, Scope.TASK_STATS)
        try:
            await self._cache.refetch(Scope.TASKS, Scope.TASK_STATS)
        except GatewayError as e:
            logger.warning(f"Refetch after mutation failed ({e.message}), cache left stale")
            if isinstance(e, Unauthorized):
                self._unauthorized()

    def _succeeded(self, task: Task, message: str, on_success: OnSuccess | None) -> MutationResult:
        self._notifier.success(message)
        if on_success is not None:
            on_success(task)
        return MutationResult(success=True, message=message, task=task)

    def _rejected(self, errors: list[FieldError]) -> MutationResult:
        message = errors[0].message
        self._notifier.error(message)
        return MutationResult(success=False, message=message, field_errors=errors)

    def _failed(self, error: GatewayError, fallback: str) -> MutationResult:
        message = error.detail or fallback
        logger.info(f"Mutation failed: {type(error).__name__}: {error.message}")
        if isinstance(error, Unauthorized):
            self._unauthorized()
        self._notifier.error(message)
        return MutationResult(success=False, message=message, field_errors=error.field_errors)

    def _unauthorized(self) -> None:
        if self._on_unauthorized is not None:
            self._on_unauthorized()

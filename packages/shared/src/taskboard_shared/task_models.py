"""Task domain models: tasks, queries, pages, statistics and mutation results.

Design choices:
  - Task ids are whatever the backend assigns (integers from a SQL sequence
    today). They are treated as opaque and only ever interpolated into paths.
  - TaskCreate and TaskUpdate carry the same field constraints the backend
    enforces, so most bad input is rejected before a request is sent.
  - TaskQuery.signature() is the cache key for a filtered listing. It is
    computed from the non-default query parameters only, so two queries that
    would hit the same URL share a cache entry.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taskboard_shared.models import ClientResult, WireModel


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"

    def toggled(self) -> TaskStatus:
        if self is TaskStatus.PENDING:
            return TaskStatus.COMPLETED
        return TaskStatus.PENDING


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000


class Task(WireModel):
    """A task as stored by the backend."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int | str
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    user_id: int | str | None = Field(default=None, alias="userId")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class TaskCreate(BaseModel):
    """Input for creating a task."""

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class TaskUpdate(BaseModel):
    """Partial update; only the fields that are set are sent."""

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class TaskQuery(BaseModel):
    """Filter, pagination and sort parameters for listing tasks."""

    model_config = ConfigDict(frozen=True)

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str | None = None
    sort_order: str | None = None

    def to_params(self) -> dict[str, str]:
        """Query-string parameters, camelCased for the backend."""
        params: dict[str, str] = {}
        if self.status:
            params["status"] = self.status.value
        if self.priority:
            params["priority"] = self.priority.value
        if self.search:
            params["search"] = self.search
        params["page"] = str(self.page)
        params["limit"] = str(self.limit)
        if self.sort_by:
            params["sortBy"] = self.sort_by
        if self.sort_order:
            params["sortOrder"] = self.sort_order
        return params

    def signature(self) -> str:
        """Stable string identifying this query, used as a cache key."""
        return json.dumps(self.to_params(), sort_keys=True, separators=(",", ":"))


class TaskPage(BaseModel):
    """One page of tasks plus the pagination totals."""

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = ()
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0

    @classmethod
    def from_payload(cls, body: Any) -> TaskPage:
        """Parse either ``{tasks, total}`` or the backend's paginated envelope.

        The backend replies with ``{"data": [...], "pagination": {page, limit,
        totalCount, totalPages}}``; a plain ``{"tasks": [...], "total": n}``
        body is accepted too.
        """
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected task listing payload: {type(body).__name__}")

        if "tasks" in body:
            tasks = [Task.model_validate(t) for t in body["tasks"]]
            total = int(body.get("total", len(tasks)))
            page = int(body.get("page", 1))
            limit = int(body.get("limit", max(len(tasks), 1)))
            total_pages = -(-total // max(limit, 1))
        else:
            tasks = [Task.model_validate(t) for t in body.get("data") or []]
            pagination = body.get("pagination") or {}
            total = int(pagination.get("totalCount", pagination.get("total", len(tasks))))
            page = int(pagination.get("page", 1))
            limit = int(pagination.get("limit", max(len(tasks), 1)))
            total_pages = int(pagination.get("totalPages", -(-total // max(limit, 1))))

        return cls(
            tasks=tuple(tasks),
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
        )


class TaskStats(WireModel):
    """Aggregate counts over all of the user's tasks."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total: int = Field(default=0, alias="totalTasks")
    pending: int = Field(default=0, alias="pendingTasks")
    completed: int = Field(default=0, alias="completedTasks")
    high_priority: int = Field(default=0, alias="highPriorityTasks")
    medium_priority: int = Field(default=0, alias="mediumPriorityTasks")
    low_priority: int = Field(default=0, alias="lowPriorityTasks")


class TaskCollectionView(BaseModel):
    """The cached view a reader gets: one page of tasks plus statistics.

    Immutable. The coordinator replaces views wholesale, so a reader holding
    one never sees it change underneath them.
    """

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...]
    total: int
    page: int
    limit: int
    total_pages: int
    stats: TaskStats
    tasks_sequence: int
    stats_sequence: int

    @property
    def completed_count(self) -> int:
        return self.stats.completed

    def find(self, task_id: int | str) -> Task | None:
        for task in self.tasks:
            if str(task.id) == str(task_id):
                return task
        return None


class MutationResult(ClientResult):
    """Returned by every Mutation Pipeline operation."""

    task: Task | None = None
    cancelled: bool = False

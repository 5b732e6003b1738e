"""Cache scopes and key patterns for the Task Cache Coordinator.

Two scopes: ``tasks`` (listings) and ``taskStats`` (aggregate counts). Key
functions are pure, they compute key names and never touch the cache.

The ``tasks`` scope is deliberately global: each query signature gets its own
key, but invalidating the scope marks every one of them stale. A mutation can
move a task into or out of any filtered listing, so there is no narrower
scope that would be safe to invalidate.
"""

from __future__ import annotations

from enum import Enum

from taskboard_shared.task_models import TaskQuery


class Scope(str, Enum):
    TASKS = "tasks"
    TASK_STATS = "taskStats"


ALL_SCOPES: tuple[Scope, ...] = (Scope.TASKS, Scope.TASK_STATS)


def tasks_key(query: TaskQuery) -> str:
    """One cached listing per distinct query."""
    return f"{Scope.TASKS.value}:{query.signature()}"


def task_stats_key() -> str:
    return Scope.TASK_STATS.value


def scope_of(key: str) -> Scope:
    """The scope a cache key belongs to."""
    if key == task_stats_key():
        return Scope.TASK_STATS
    if key.startswith(f"{Scope.TASKS.value}:"):
        return Scope.TASKS
    raise ValueError(f"Not a task cache key: '{key}'")

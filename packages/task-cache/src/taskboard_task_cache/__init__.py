"""Task Cache Coordinator: cached task listings and statistics plus their invalidation protocol."""

from taskboard_task_cache.coordinator import CacheEntry, TaskCacheCoordinator, TaskSource
from taskboard_task_cache.scopes import ALL_SCOPES, Scope

__all__ = ["ALL_SCOPES", "CacheEntry", "Scope", "TaskCacheCoordinator", "TaskSource"]

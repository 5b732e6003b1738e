"""Task Cache Coordinator: the client's cached view of the task collection.

The remote store is the source of truth; this cache only holds the most
recent answers to "list tasks for query Q" and "task statistics". It defines
the protocol that keeps those answers honest after a mutation:

  1. The mutation completes on the server.
  2. ``invalidate()`` marks every entry in the affected scopes stale and
     fences off every fetch issued before that point.
  3. ``refetch()`` re-requests every cached key in those scopes.

Ordering is decided by sequence numbers, not by delivery order. Every fetch
takes the next number when it is issued. A completed fetch is stored only if
no entry with a higher number is already cached and its scope has not been
invalidated since it was issued. So a slow response can never overwrite a
newer one, and a response computed before a mutation can never clear the
staleness mark that mutation set.

Entries are immutable and replaced by a single dict assignment, so a reader
sees either the old entry or the new one, never a mix.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from typing import Protocol

from taskboard_shared.task_models import (
    TaskCollectionView,
    TaskPage,
    TaskQuery,
    TaskStats,
)

from taskboard_task_cache.scopes import (
    ALL_SCOPES,
    Scope,
    scope_of,
    task_stats_key,
    tasks_key,
)

logger = logging.getLogger(__name__)

CacheListener = Callable[[frozenset[Scope]], None]

# Listings kept per session; the least recently read query is dropped first.
MAX_TRACKED_QUERIES = 10


class TaskSource(Protocol):
    """What the coordinator needs from the Remote Gateway."""

    async def list_tasks(self, query: TaskQuery | None = None) -> TaskPage: ...

    async def get_task_stats(self) -> TaskStats: ...


@dataclass(frozen=True)
class CacheEntry:
    value: TaskPage | TaskStats
    sequence: int
    stale: bool = False


class TaskCacheCoordinator:
    """Owns the cached task listings and statistics for one client session."""

    def __init__(
        self,
        source: TaskSource,
        default_query: TaskQuery | None = None,
        max_queries: int = MAX_TRACKED_QUERIES,
    ) -> None:
        if max_queries < 1:
            raise ValueError("max_queries must be at least 1")
        self._source = source
        self.default_query = default_query or TaskQuery()
        self.max_queries = max_queries
        self._entries: dict[str, CacheEntry] = {}
        self._queries: OrderedDict[str, TaskQuery] = OrderedDict()
        self._fences: dict[Scope, int] = {scope: 0 for scope in ALL_SCOPES}
        self._issued = 0
        self._listeners: list[CacheListener] = []
        self.fetch_count = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(self, query: TaskQuery | None = None) -> TaskCollectionView:
        """Return the view for ``query``, fetching whatever is missing or stale."""
        query = query or self.default_query
        page_key, stats_key = tasks_key(query), task_stats_key()

        if page_key in self._queries:
            self._queries.move_to_end(page_key)

        page_entry = self._usable(page_key)
        stats_entry = self._usable(stats_key)
        if page_entry is not None and stats_entry is not None:
            return self._compose(page_entry, stats_entry)

        missing = frozenset(
            scope_of(key) for key in (page_key, stats_key) if self._usable(key) is None
        )
        page_entry, stats_entry = await self._settle(
            [
                self._current(page_key, query),
                self._current(stats_key, query),
            ]
        )
        self._notify(missing)
        return self._compose(page_entry, stats_entry)

    def cached(self, query: TaskQuery | None = None) -> TaskCollectionView | None:
        """The cached view for ``query`` without fetching, stale or not."""
        query = query or self.default_query
        page_entry = self._entries.get(tasks_key(query))
        stats_entry = self._entries.get(task_stats_key())
        if page_entry is None or stats_entry is None:
            return None
        return self._compose(page_entry, stats_entry)

    def is_stale(self, scope: Scope, query: TaskQuery | None = None) -> bool:
        """True when the entry is missing or has been invalidated."""
        if scope is Scope.TASKS:
            key = tasks_key(query or self.default_query)
        else:
            key = task_stats_key()
        entry = self._entries.get(key)
        return entry is None or entry.stale

    # ------------------------------------------------------------------
    # Invalidation protocol
    # ------------------------------------------------------------------

    def invalidate(self, *scopes: Scope) -> None:
        """Mark every entry in ``scopes`` (default: all) stale.

        Also fences the scopes: fetches already in flight will not be stored
        when they complete. Calling this twice has the same effect as once.
        """
        targets = set(scopes or ALL_SCOPES)
        for scope in targets:
            self._fences[scope] = self._issued
        for key, entry in list(self._entries.items()):
            if scope_of(key) in targets and not entry.stale:
                self._entries[key] = replace(entry, stale=True)
        logger.debug(f"Invalidated {sorted(s.value for s in targets)} at #{self._issued}")

    async def refetch(self, *scopes: Scope) -> None:
        """Re-fetch every cached key in ``scopes`` (default: all) right now.

        When no listing is cached yet, the default query is fetched so the
        scope is populated. Raises the first fetch error once every fetch has
        settled; successful fetches are still stored.
        """
        targets = scopes or ALL_SCOPES
        fetches: list[Awaitable[CacheEntry]] = []
        for scope in targets:
            if scope is Scope.TASK_STATS:
                fetches.append(self._fetch_stats())
                continue
            queries = dict(self._queries) or {tasks_key(self.default_query): self.default_query}
            fetches.extend(self._fetch_tasks(key, query) for key, query in queries.items())

        await self._settle(fetches)
        self._notify(frozenset(targets))

    def clear(self) -> None:
        """Drop everything, e.g. on logout.

        In-flight fetches are fenced so a response for the previous session
        cannot repopulate the cache.
        """
        for scope in ALL_SCOPES:
            self._fences[scope] = self._issued
        self._entries.clear()
        self._queries.clear()
        logger.debug("Task cache cleared")

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Call ``listener`` with the refreshed scopes after every fetch round."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _usable(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return None
        return entry

    async def _current(self, key: str, query: TaskQuery) -> CacheEntry:
        entry = self._usable(key)
        if entry is not None:
            return entry
        if scope_of(key) is Scope.TASKS:
            return await self._fetch_tasks(key, query)
        return await self._fetch_stats()

    def _issue(self) -> int:
        self._issued += 1
        self.fetch_count += 1
        return self._issued

    async def _fetch_tasks(self, key: str, query: TaskQuery) -> CacheEntry:
        sequence = self._issue()
        self._track(key, query)
        page = await self._source.list_tasks(query)
        return self._store(key, Scope.TASKS, sequence, page)

    async def _fetch_stats(self) -> CacheEntry:
        sequence = self._issue()
        stats = await self._source.get_task_stats()
        return self._store(task_stats_key(), Scope.TASK_STATS, sequence, stats)

    def _track(self, key: str, query: TaskQuery) -> None:
        """Remember ``query`` for refetch, dropping the least recently used."""
        self._queries[key] = query
        self._queries.move_to_end(key)
        while len(self._queries) > self.max_queries:
            evicted, _ = self._queries.popitem(last=False)
            self._entries.pop(evicted, None)
            logger.debug(f"Evicted {evicted} from the task cache")

    def _store(
        self, key: str, scope: Scope, sequence: int, value: TaskPage | TaskStats
    ) -> CacheEntry:
        fresh = CacheEntry(value=value, sequence=sequence)

        if sequence <= self._fences[scope]:
            logger.debug(f"Not caching {key} #{sequence}: scope fenced at #{self._fences[scope]}")
            return fresh

        if scope is Scope.TASKS and key not in self._queries:
            logger.debug(f"Not caching {key} #{sequence}: query no longer tracked")
            return fresh

        current = self._entries.get(key)
        if current is not None and current.sequence > sequence:
            logger.debug(f"Discarding {key} #{sequence}: superseded by #{current.sequence}")
            return current

        self._entries[key] = fresh
        return fresh

    @staticmethod
    async def _settle(fetches: Iterable[Awaitable[CacheEntry]]) -> list[CacheEntry]:
        """Await all fetches; raise the first failure only after all have finished."""
        results = await asyncio.gather(*fetches, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results

    @staticmethod
    def _compose(page_entry: CacheEntry, stats_entry: CacheEntry) -> TaskCollectionView:
        page = page_entry.value
        stats = stats_entry.value
        if not isinstance(page, TaskPage) or not isinstance(stats, TaskStats):
            raise TypeError(
                f"Cannot compose a view from {type(page).__name__} and {type(stats).__name__}"
            )
        return TaskCollectionView(
            tasks=page.tasks,
            total=page.total,
            page=page.page,
            limit=page.limit,
            total_pages=page.total_pages,
            stats=stats,
            tasks_sequence=page_entry.sequence,
            stats_sequence=stats_entry.sequence,
        )

    def _notify(self, scopes: frozenset[Scope]) -> None:
        for listener in list(self._listeners):
            listener(scopes)

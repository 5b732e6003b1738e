"""Application context: builds and wires the client components.

This is the one place that knows how the pieces fit together. Each context
owns its own SessionStore, RemoteGateway, AuthSessionManager,
TaskCacheCoordinator and MutationPipeline, so AuthState and the task cache
are singletons per context, not per process. Tests build as many isolated
contexts as they like.

Usage:
    async with TaskboardContext(ClientSettings.from_env()) as ctx:
        if ctx.auth.state.is_authenticated:
            view = await ctx.cache.read()
"""

from __future__ import annotations

import logging

import httpx
from taskboard_auth import AuthSessionManager
from taskboard_gateway import RemoteGateway
from taskboard_mutations import MutationPipeline, Notifier
from taskboard_mutations.pipeline import Confirm
from taskboard_session_store import SessionStore, TokenStorage, storage_from_settings
from taskboard_shared.config import ClientSettings
from taskboard_shared.errors import GatewayError
from taskboard_task_cache import TaskCacheCoordinator

logger = logging.getLogger(__name__)


class TaskboardContext:
    """One client session's worth of wired-up services."""

    def __init__(
        self,
        settings: ClientSettings,
        storage: TokenStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        notifier: Notifier | None = None,
        confirm: Confirm | None = None,
    ) -> None:
        self.settings = settings
        self.session_store = SessionStore(storage or storage_from_settings(settings))
        self.gateway = RemoteGateway(settings, self.session_store, transport=transport)
        self.cache = TaskCacheCoordinator(self.gateway)
        self.auth = AuthSessionManager(self.gateway, self.session_store, cache=self.cache)
        self.mutations = MutationPipeline(
            self.gateway,
            self.cache,
            notifier=notifier,
            confirm=confirm,
            on_unauthorized=self.auth.handle_unauthorized,
        )

    async def start(self) -> None:
        """Resolve any persisted session.

        A server that can't be reached is not fatal here: the context starts
        signed out and the credential is kept for the next attempt.
        """
        try:
            await self.auth.initialize()
        except GatewayError as e:
            logger.warning(f"Session check failed: {e.message}")

    async def close(self) -> None:
        await self.gateway.close()

    async def __aenter__(self) -> TaskboardContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

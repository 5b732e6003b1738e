"""Session Store: owns the current bearer credential.

The credential is loaded from storage once, when the store is constructed,
and cached in memory afterwards. Reads never touch storage; writes go to both
the cache and storage.

Usage:
    store = SessionStore(FileTokenStorage(path))
    if store.has():
        headers["Authorization"] = f"Bearer {store.get()}"
"""

from __future__ import annotations

import logging

from taskboard_session_store.storage import TokenStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "authToken"


class SessionStore:
    """Cached, persisted holder of a single opaque credential."""

    def __init__(self, storage: TokenStorage, key: str = TOKEN_KEY) -> None:
        self._storage = storage
        self._key = key
        self._token: str | None = storage.load(key) or None
        if self._token:
            logger.debug("Restored persisted session credential")

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("Refusing to store an empty credential")
        self._token = token
        self._storage.save(self._key, token)

    def clear(self) -> None:
        self._token = None
        self._storage.delete(self._key)

    def has(self) -> bool:
        return self._token is not None

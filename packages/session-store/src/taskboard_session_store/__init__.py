"""Session Store: the current credential and its persistence across restarts."""

from taskboard_session_store.storage import (
    FileTokenStorage,
    MemoryTokenStorage,
    TokenStorage,
    storage_from_settings,
)
from taskboard_session_store.store import TOKEN_KEY, SessionStore

__all__ = [
    "TOKEN_KEY",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "SessionStore",
    "TokenStorage",
    "storage_from_settings",
]

"""Durable storage backends for the session credential.

Normalizes the interface between a JSON file on disk (the default, survives
restarts) and a plain dict (tests, ephemeral sessions). Both map a fixed key
to a string value; the SessionStore never touches files directly.

Backend selection follows ClientSettings.token_file:
  - a path → FileTokenStorage
  - None   → MemoryTokenStorage
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from taskboard_shared.config import ClientSettings

logger = logging.getLogger(__name__)


class TokenStorage(Protocol):
    def load(self, key: str) -> str | None: ...

    def save(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryTokenStorage:
    """In-process storage. Contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self.values.get(key)

    def save(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


class FileTokenStorage:
    """A small JSON document on disk, rewritten atomically on every change.

    The file is created with mode 0600 since it holds a bearer token. A
    missing file reads as empty; so does an unreadable or corrupt one, which
    is logged and then overwritten on the next save.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read session file {self.path}: {e}")
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Session file {self.path} is not valid JSON, ignoring it")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".session-")
        try:
            with os.fdopen(fd, "w") as fh:
                json.dump(data, fh)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

    def load(self, key: str) -> str | None:
        return self._read_all().get(key)

    def save(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key not in data:
            return
        del data[key]
        if data:
            self._write_all(data)
        else:
            with contextlib.suppress(FileNotFoundError):
                self.path.unlink()


def storage_from_settings(settings: ClientSettings) -> TokenStorage:
    """Pick the storage backend the settings ask for."""
    if settings.token_file is None:
        return MemoryTokenStorage()
    return FileTokenStorage(settings.token_file)

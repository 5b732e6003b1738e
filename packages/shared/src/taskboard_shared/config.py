"""Client settings, read from the environment.

Two storage modes for the session credential, selected by TASKBOARD_TOKEN_FILE:

1. **Unset**: the credential is persisted to ``~/.taskboard/session.json`` so a
   login survives between CLI invocations.

2. **Set to an empty string**: the credential lives in memory only and is gone
   when the process exits. Useful for CI and throwaway sessions.

Any other value is taken as the path of the session file.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_TOKEN_FILE = Path.home() / ".taskboard" / "session.json"


def _env_number(name: str, default: float, cast: type = float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


class ClientSettings(BaseModel):
    """Everything the client needs to reach the API and keep a session."""

    api_url: str = DEFAULT_API_URL
    token_file: Path | None = DEFAULT_TOKEN_FILE
    timeout: float = 10.0
    retry_attempts: int = 3
    retry_max_wait: float = 8.0
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> ClientSettings:
        """Build settings from TASKBOARD_* environment variables."""
        token_file_raw = os.environ.get("TASKBOARD_TOKEN_FILE")
        if token_file_raw is None:
            token_file: Path | None = DEFAULT_TOKEN_FILE
        elif token_file_raw == "":
            token_file = None
        else:
            token_file = Path(token_file_raw).expanduser()

        return cls(
            api_url=os.environ.get("TASKBOARD_API_URL", DEFAULT_API_URL),
            token_file=token_file,
            timeout=_env_number("TASKBOARD_TIMEOUT", 10.0),
            retry_attempts=int(_env_number("TASKBOARD_RETRY_ATTEMPTS", 3, int)),
            retry_max_wait=_env_number("TASKBOARD_RETRY_MAX_WAIT", 8.0),
            log_level=os.environ.get("TASKBOARD_LOG_LEVEL", "WARNING").upper(),
        )

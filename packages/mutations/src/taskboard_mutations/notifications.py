"""User-facing notifications emitted by the Mutation Pipeline.

The pipeline only knows the Notifier protocol. A UI binds it to toasts, the
CLI to stdout/stderr, and tests to a recorder.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Fallback notifier: routes notifications to the log."""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)

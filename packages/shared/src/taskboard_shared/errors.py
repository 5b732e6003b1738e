"""Gateway error taxonomy.

Every failed HTTP call surfaces as one of these, never as a silent None.
Callers pick the granularity they need: the session manager cares about
Unauthorized and Conflict, the mutation pipeline mostly about the message.

The message is the server's own message when it sent one; otherwise a short
description of what went wrong.
"""

from __future__ import annotations

from collections.abc import Iterable

from taskboard_shared.models import FieldError


class GatewayError(Exception):
    """Base class for every failure surfaced by the Remote Gateway.

    ``detail`` is the message the server (or the raising code) supplied, None
    when there was none; ``message`` falls back to the class default.
    """

    default_message = "An error occurred"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        field_errors: Iterable[FieldError] = (),
    ) -> None:
        self.detail = message
        self.message = message or self.default_message
        self.status_code = status_code
        self.field_errors = list(field_errors)
        super().__init__(self.message)


class Unauthorized(GatewayError):
    default_message = "Authentication required"


class Forbidden(GatewayError):
    default_message = "Access denied"


class ValidationFailed(GatewayError):
    """Input was rejected, client-side or by the server (400/422)."""

    default_message = "Validation failed"

    def messages(self) -> dict[str, str]:
        """First message per field, in the order the fields were reported."""
        result: dict[str, str] = {}
        for error in self.field_errors:
            result.setdefault(error.field, error.message)
        return result


class NotFound(GatewayError):
    default_message = "Resource not found"


class Conflict(GatewayError):
    default_message = "Resource already exists"


class AccountAlreadyExists(Conflict):
    default_message = "An account with this email already exists"


class NetworkFailure(GatewayError):
    default_message = "Unable to reach the server"


class ServerError(GatewayError):
    default_message = "The server encountered an error"


_STATUS_ERRORS: dict[int, type[GatewayError]] = {
    400: ValidationFailed,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    422: ValidationFailed,
}


def error_for_status(
    status_code: int,
    message: str | None = None,
    field_errors: Iterable[FieldError] = (),
) -> GatewayError:
    """Build the typed error for an HTTP status code."""
    if status_code >= 500:
        cls: type[GatewayError] = ServerError
    else:
        cls = _STATUS_ERRORS.get(status_code, GatewayError)
    return cls(message, status_code=status_code, field_errors=field_errors)

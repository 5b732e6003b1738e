"""Pydantic base models shared across components.

These are the contract types that flow between the gateway, the session
manager, the cache and the mutation pipeline. Pydantic validates payloads at
the HTTP boundary, so a malformed server response fails fast with a clear
error instead of leaking half-parsed data into the cache.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base for models that mirror the backend's camelCase JSON.

    Fields declare their wire name as an alias; both the alias and the Python
    attribute name are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True)


class FieldError(BaseModel):
    """A single field-level validation message."""

    field: str
    message: str


class ClientResult(BaseModel):
    """Standard result envelope returned by user-facing operations.

    Expected business failures (validation, a rejected request) come back as
    ``success=False`` with a message rather than as an exception, so callers
    can render them without a try/except around every action.
    """

    success: bool
    message: str
    field_errors: list[FieldError] = []


def unwrap_envelope(body: Any) -> Any:
    """Return the ``data`` member of the backend's response envelope.

    The backend wraps payloads as ``{"success": ..., "message": ..., "data": ...}``.
    Bodies without that shape are returned unchanged.
    """
    if isinstance(body, dict) and "data" in body and "success" in body:
        return body["data"]
    return body

"""Client-side validation for task and account forms.

Each validator returns a list of FieldError; an empty list means the input is
valid. The rules and messages match what the backend enforces, so users see
the same wording whether a mistake is caught locally or by the server.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from taskboard_shared.models import FieldError
from taskboard_shared.task_models import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TaskCreate,
    TaskUpdate,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128

_TASK_MESSAGES: dict[str, str] = {
    "title": f"Title is required and must be between 1 and {TITLE_MAX_LENGTH} characters",
    "description": f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters",
    "status": 'Status must be either "pending" or "completed"',
    "priority": 'Priority must be either "low", "medium", or "high"',
}

# Update forms have no "required" fields, so the title wording differs.
_PATCH_MESSAGES: dict[str, str] = {
    "title": f"Title must be between 1 and {TITLE_MAX_LENGTH} characters",
}

# Present-but-None is rejected for these; description may be cleared.
_REQUIRED_PATCH_FIELDS = ("title", "status", "priority")


def _model_errors(model: type[BaseModel], data: Mapping[str, Any]) -> list[FieldError]:
    try:
        model.model_validate(dict(data))
    except ValidationError as e:
        errors: list[FieldError] = []
        seen: set[str] = set()
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            if field in seen:
                continue
            seen.add(field)
            errors.append(FieldError(field=field, message=_TASK_MESSAGES.get(field, err["msg"])))
        return errors
    return []


def validate_task_input(data: Mapping[str, Any]) -> list[FieldError]:
    """Validate a task creation form."""
    errors = _model_errors(TaskCreate, data)
    title = data.get("title")
    if isinstance(title, str) and title and not title.strip():
        errors.insert(0, FieldError(field="title", message=_TASK_MESSAGES["title"]))
    return errors


def validate_task_patch(data: Mapping[str, Any]) -> list[FieldError]:
    """Validate a partial task update. An empty patch is an error.

    A field that is present must carry a usable value: only ``description``
    may be cleared with None, and a title may not be blank.
    """
    if not data:
        return [FieldError(field="__root__", message="No fields to update")]

    errors: list[FieldError] = []
    for field in _REQUIRED_PATCH_FIELDS:
        if field in data and data[field] is None:
            message = _PATCH_MESSAGES.get(field, _TASK_MESSAGES[field])
            errors.append(FieldError(field=field, message=message))
    title = data.get("title")
    if isinstance(title, str) and title and not title.strip():
        errors.append(FieldError(field="title", message=_PATCH_MESSAGES["title"]))

    flagged = {e.field for e in errors}
    for err in _model_errors(TaskUpdate, data):
        if err.field in flagged:
            continue
        if err.field in _PATCH_MESSAGES:
            err = FieldError(field=err.field, message=_PATCH_MESSAGES[err.field])
        errors.append(err)
    return errors


def validate_email(email: str) -> list[FieldError]:
    if not email or not EMAIL_PATTERN.match(email.strip()):
        return [FieldError(field="email", message="Please provide a valid email address")]
    return []


def validate_password(password: str, field: str = "password") -> list[FieldError]:
    """Registration-strength password rules: 6-128 chars, a letter and a digit."""
    if not (PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH):
        return [
            FieldError(
                field=field,
                message=(
                    f"Password must be between {PASSWORD_MIN_LENGTH} and "
                    f"{PASSWORD_MAX_LENGTH} characters"
                ),
            )
        ]
    if not (re.search(r"[a-zA-Z]", password) and re.search(r"\d", password)):
        return [
            FieldError(
                field=field,
                message="Password must contain at least one letter and one number",
            )
        ]
    return []


def validate_login(email: str, password: str) -> list[FieldError]:
    errors = validate_email(email)
    if not password:
        errors.append(FieldError(field="password", message="Password is required"))
    return errors


def validate_registration(
    email: str, password: str, confirm_password: str | None = None
) -> list[FieldError]:
    errors = validate_email(email) + validate_password(password)
    if confirm_password is not None and confirm_password != password:
        errors.append(FieldError(field="confirm_password", message="Passwords don't match"))
    return errors

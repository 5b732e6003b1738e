"""Tests for client-side form validation and the error taxonomy."""

from __future__ import annotations

import pytest
from taskboard_shared.errors import (
    AccountAlreadyExists,
    Conflict,
    Forbidden,
    GatewayError,
    NotFound,
    ServerError,
    Unauthorized,
    ValidationFailed,
    error_for_status,
)
from taskboard_shared.models import FieldError
from taskboard_shared.validation import (
    validate_login,
    validate_password,
    validate_registration,
    validate_task_input,
    validate_task_patch,
)


class TestTaskInput:
    def test_valid_input(self):
        assert validate_task_input({"title": "Buy milk", "priority": "low"}) == []

    def test_missing_title(self):
        errors = validate_task_input({})
        assert [e.field for e in errors] == ["title"]

    def test_whitespace_title(self):
        errors = validate_task_input({"title": "   "})
        assert errors[0].field == "title"
        assert "between 1 and 255" in errors[0].message

    def test_title_too_long(self):
        assert validate_task_input({"title": "x" * 256})[0].field == "title"

    def test_description_too_long(self):
        errors = validate_task_input({"title": "ok", "description": "x" * 1001})
        assert errors == [
            FieldError(field="description", message="Description must be less than 1000 characters")
        ]

    def test_bad_status_and_priority(self):
        errors = validate_task_input({"title": "ok", "status": "done", "priority": "urgent"})
        assert {e.field for e in errors} == {"status", "priority"}


class TestTaskPatch:
    def test_empty_patch(self):
        assert validate_task_patch({})[0].message == "No fields to update"

    def test_partial_patch(self):
        assert validate_task_patch({"status": "completed"}) == []

    def test_empty_title_rejected(self):
        assert validate_task_patch({"title": ""}) == [
            FieldError(field="title", message="Title must be between 1 and 255 characters")
        ]

    def test_whitespace_title_rejected(self):
        assert validate_task_patch({"title": "   "}) == [
            FieldError(field="title", message="Title must be between 1 and 255 characters")
        ]

    @pytest.mark.parametrize("field", ["title", "status", "priority"])
    def test_null_for_required_field_rejected(self, field):
        errors = validate_task_patch({field: None})
        assert [e.field for e in errors] == [field]

    def test_null_status_message(self):
        assert validate_task_patch({"status": None})[0].message == (
            'Status must be either "pending" or "completed"'
        )

    def test_description_may_be_cleared(self):
        assert validate_task_patch({"description": None}) == []


class TestAccountForms:
    def test_login_requires_email_and_password(self):
        errors = validate_login("not-an-email", "")
        assert [e.field for e in errors] == ["email", "password"]

    @pytest.mark.parametrize(
        "password, fragment",
        [
            ("ab1", "between 6 and 128"),
            ("abcdefgh", "one letter and one number"),
            ("12345678", "one letter and one number"),
        ],
    )
    def test_weak_passwords(self, password, fragment):
        assert fragment in validate_password(password)[0].message

    def test_registration_mismatch(self):
        errors = validate_registration("a@example.com", "secret123", "secret124")
        assert errors == [FieldError(field="confirm_password", message="Passwords don't match")]

    def test_registration_without_confirmation(self):
        assert validate_registration("a@example.com", "secret123") == []


class TestErrorForStatus:
    @pytest.mark.parametrize(
        "status, cls",
        [
            (400, ValidationFailed),
            (401, Unauthorized),
            (403, Forbidden),
            (404, NotFound),
            (409, Conflict),
            (422, ValidationFailed),
            (500, ServerError),
            (503, ServerError),
            (418, GatewayError),
        ],
    )
    def test_maps_status(self, status, cls):
        error = error_for_status(status)
        assert type(error) is cls
        assert error.status_code == status

    def test_server_message_wins(self):
        error = error_for_status(404, "Task not found")
        assert error.message == "Task not found"
        assert error.detail == "Task not found"

    def test_default_message(self):
        error = error_for_status(401)
        assert error.message == "Authentication required"
        assert error.detail is None

    def test_account_exists_is_a_conflict(self):
        assert isinstance(AccountAlreadyExists(), Conflict)
        assert AccountAlreadyExists().message == "An account with this email already exists"

    def test_messages_keeps_first_per_field(self):
        error = ValidationFailed(
            field_errors=[
                FieldError(field="title", message="first"),
                FieldError(field="title", message="second"),
                FieldError(field="status", message="bad"),
            ]
        )
        assert error.messages() == {"title": "first", "status": "bad"}

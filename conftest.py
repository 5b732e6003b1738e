"""Shared test fixtures for the Taskboard client packages.

Provides:
  - MockTransport: canned httpx responses, for tests that pin exact wire behavior
  - FakeTaskApi: an in-memory Taskboard backend served over an httpx transport,
    issuing real HS256 JWTs, for tests that exercise whole flows
  - ClientSettings pointed at the fake backend, with retry waits disabled
  - A recording notifier and a TaskboardContext factory
"""

from __future__ import annotations

import json
import time
from datetime import UTC, datetime
from typing import Any

import httpx
import jwt as pyjwt
import pytest
from taskboard_app.context import TaskboardContext
from taskboard_session_store import MemoryTokenStorage
from taskboard_shared.config import ClientSettings

API_URL = "http://testserver/api"
SECRET = "taskboard-test-secret"


class MockTransport(httpx.AsyncBaseTransport):
    """Mock HTTP transport that returns preconfigured responses.

    Each call to handle_async_request pops the next item from the list. An
    exception instance is raised instead of returned, which is how transport
    failures are simulated. If the list is exhausted, returns a 500 error.
    """

    def __init__(self, responses: list[httpx.Response | Exception] | None = None) -> None:
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            response.stream = httpx.ByteStream(response.content)
            return response
        return httpx.Response(500, json={"error": "No more mock responses"})


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _ok(data: Any = None, status_code: int = 200, message: str = "OK") -> httpx.Response:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return httpx.Response(status_code, json=body)


def _fail(status_code: int, message: str, errors: list[dict] | None = None) -> httpx.Response:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return httpx.Response(status_code, json=body)


class FakeTaskApi(httpx.AsyncBaseTransport):
    """In-memory Taskboard backend.

    Speaks the same envelope, status codes and JWT bearer auth as the real
    server. ``fail_next`` queues a canned response (or exception) for one
    method and path, ahead of the normal handling.
    """

    prefix = "/api"

    def __init__(self, secret: str = SECRET) -> None:
        self.secret = secret
        self.users: dict[str, dict[str, Any]] = {}
        self.tasks: dict[int, dict[str, Any]] = {}
        self.revoked: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str], list[httpx.Response | Exception]] = {}
        self._next_user_id = 1
        self._next_task_id = 1

    # -- setup helpers -------------------------------------------------

    def add_user(self, email: str, password: str = "secret123") -> dict[str, Any]:
        user = {
            "id": self._next_user_id,
            "email": email,
            "password": password,
            "createdAt": _now(),
        }
        self._next_user_id += 1
        self.users[email] = user
        return user

    def issue_token(self, user: dict[str, Any], exp: int | None = None) -> str:
        payload = {
            "userId": user["id"],
            "email": user["email"],
            "exp": exp or int(time.time()) + 3600,
        }
        return pyjwt.encode(payload, self.secret, algorithm="HS256")

    def add_task(
        self,
        user: dict[str, Any],
        title: str,
        status: str = "pending",
        priority: str = "medium",
        description: str | None = None,
    ) -> dict[str, Any]:
        task = {
            "id": self._next_task_id,
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "userId": user["id"],
            "createdAt": _now(),
            "updatedAt": _now(),
        }
        self._next_task_id += 1
        self.tasks[task["id"]] = task
        return task

    def fail_next(self, method: str, path: str, response: httpx.Response | Exception) -> None:
        self._failures.setdefault((method, path), []).append(response)

    def calls(self, method: str, path: str) -> int:
        return sum(
            1
            for r in self.requests
            if r.method == method and r.url.path == f"{self.prefix}{path}"
        )

    # -- transport -----------------------------------------------------

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(self.prefix)

        queued = self._failures.get((request.method, path))
        if queued:
            failure = queued.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return failure

        body = json.loads(request.content) if request.content else {}

        if path == "/auth/login" and request.method == "POST":
            return self._login(body)
        if path == "/auth/register" and request.method == "POST":
            return self._register(body)

        user = self._authenticate(request)
        if user is None:
            return _fail(401, "Invalid or expired token")

        if path == "/auth/logout" and request.method == "POST":
            self.revoked.add(self._bearer(request) or "")
            return _ok(message="Logged out successfully")
        if path == "/auth/me" and request.method == "GET":
            return _ok({"user": self._public(user)})
        if path == "/auth/change-password" and request.method == "POST":
            return self._change_password(user, body)
        if path == "/tasks" and request.method == "GET":
            return self._list(user, request.url.params)
        if path == "/tasks" and request.method == "POST":
            return self._create(user, body)
        if path == "/tasks/stats" and request.method == "GET":
            return self._stats(user)
        if path.startswith("/tasks/"):
            return self._single(user, request.method, path.removeprefix("/tasks/"), body)
        return _fail(404, "Route not found")

    # -- auth ----------------------------------------------------------

    @staticmethod
    def _public(user: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in user.items() if k != "password"}

    @staticmethod
    def _bearer(request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return header.removeprefix("Bearer ")

    def _authenticate(self, request: httpx.Request) -> dict[str, Any] | None:
        token = self._bearer(request)
        if token is None or token in self.revoked:
            return None
        try:
            claims = pyjwt.decode(token, self.secret, algorithms=["HS256"])
        except pyjwt.PyJWTError:
            return None
        return self.users.get(claims.get("email", ""))

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        user = self.users.get(body.get("email", ""))
        if user is None or user["password"] != body.get("password"):
            return _fail(401, "Invalid email or password")
        return _ok({"user": self._public(user), "token": self.issue_token(user)})

    def _register(self, body: dict[str, Any]) -> httpx.Response:
        email = body.get("email", "")
        if email in self.users:
            return _fail(409, "User already exists")
        user = self.add_user(email, body.get("password", ""))
        return _ok(
            {"user": self._public(user), "token": self.issue_token(user)},
            status_code=201,
            message="User registered successfully",
        )

    def _change_password(self, user: dict[str, Any], body: dict[str, Any]) -> httpx.Response:
        if body.get("currentPassword") != user["password"]:
            return _fail(400, "Current password is incorrect")
        user["password"] = body.get("newPassword", "")
        return _ok(message="Password changed successfully")

    # -- tasks ---------------------------------------------------------

    def _owned(self, user: dict[str, Any]) -> list[dict[str, Any]]:
        return [t for t in self.tasks.values() if t["userId"] == user["id"]]

    def _list(self, user: dict[str, Any], params: httpx.QueryParams) -> httpx.Response:
        tasks = self._owned(user)
        if params.get("status"):
            tasks = [t for t in tasks if t["status"] == params["status"]]
        if params.get("priority"):
            tasks = [t for t in tasks if t["priority"] == params["priority"]]
        if params.get("search"):
            needle = params["search"].lower()
            tasks = [
                t
                for t in tasks
                if needle in t["title"].lower() or needle in (t["description"] or "").lower()
            ]
        tasks.sort(key=lambda t: t["id"], reverse=True)

        page = int(params.get("page", 1))
        limit = int(params.get("limit", 10))
        total = len(tasks)
        start = (page - 1) * limit
        return httpx.Response(
            200,
            json={
                "success": True,
                "message": "Tasks retrieved successfully",
                "data": tasks[start : start + limit],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "totalCount": total,
                    "totalPages": -(-total // limit),
                },
            },
        )

    def _stats(self, user: dict[str, Any]) -> httpx.Response:
        tasks = self._owned(user)

        def count(field: str, value: str) -> int:
            return sum(1 for t in tasks if t[field] == value)

        return _ok(
            {
                "totalTasks": len(tasks),
                "pendingTasks": count("status", "pending"),
                "completedTasks": count("status", "completed"),
                "highPriorityTasks": count("priority", "high"),
                "mediumPriorityTasks": count("priority", "medium"),
                "lowPriorityTasks": count("priority", "low"),
            }
        )

    def _create(self, user: dict[str, Any], body: dict[str, Any]) -> httpx.Response:
        title = (body.get("title") or "").strip()
        if not title:
            return _fail(
                400,
                "Validation failed",
                [{"field": "title", "message": "Title is required"}],
            )
        task = self.add_task(
            user,
            title,
            status=body.get("status", "pending"),
            priority=body.get("priority", "medium"),
            description=body.get("description"),
        )
        return _ok(task, status_code=201, message="Task created successfully")

    def _single(
        self, user: dict[str, Any], method: str, raw_id: str, body: dict[str, Any]
    ) -> httpx.Response:
        task = self.tasks.get(int(raw_id)) if raw_id.isdigit() else None
        if task is None or task["userId"] != user["id"]:
            return _fail(404, "Task not found")

        if method == "GET":
            return _ok(task)
        if method == "PATCH":
            for field in ("title", "description", "status", "priority"):
                if field in body:
                    task[field] = body[field]
            task["updatedAt"] = _now()
            return _ok(task, message="Task updated successfully")
        if method == "DELETE":
            del self.tasks[task["id"]]
            return _ok(message="Task deleted successfully")
        return _fail(405, "Method not allowed")


class RecordingNotifier:
    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


def task_payload(task_id: int = 1, title: str = "Write report", **overrides: Any) -> dict[str, Any]:
    """A task as the backend serializes it."""
    payload: dict[str, Any] = {
        "id": task_id,
        "title": title,
        "description": None,
        "status": "pending",
        "priority": "medium",
        "userId": 1,
        "createdAt": "2026-01-05T09:30:00Z",
        "updatedAt": "2026-01-05T09:30:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def fake_api() -> FakeTaskApi:
    return FakeTaskApi()


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        api_url=API_URL,
        token_file=None,
        timeout=5.0,
        retry_attempts=3,
        retry_max_wait=0,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_task():
    """Factory for backend-shaped task payloads."""
    return task_payload


@pytest.fixture
async def make_context(settings, fake_api, notifier):
    """Factory for TaskboardContexts wired to the fake backend.

    Contexts are not started; call ``await ctx.start()``. All are closed at
    teardown.
    """
    contexts: list[TaskboardContext] = []

    def _make(storage=None, confirm=None) -> TaskboardContext:
        ctx = TaskboardContext(
            settings,
            storage=storage if storage is not None else MemoryTokenStorage(),
            transport=fake_api,
            notifier=notifier,
            confirm=confirm,
        )
        contexts.append(ctx)
        return ctx

    yield _make

    for ctx in contexts:
        await ctx.close()

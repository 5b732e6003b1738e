"""API path patterns for the Remote Gateway.

Paths are relative to ClientSettings.api_url. Route functions are pure: they
compute paths, never touch the network.
"""


# ============================================================================
# Auth routes
# ============================================================================


def login_path() -> str:
    return "/auth/login"


def register_path() -> str:
    return "/auth/register"


def logout_path() -> str:
    return "/auth/logout"


def current_user_path() -> str:
    return "/auth/me"


def change_password_path() -> str:
    return "/auth/change-password"


# ============================================================================
# Task routes
# ============================================================================


def tasks_path() -> str:
    """Collection: list (GET) and create (POST)."""
    return "/tasks"


def task_stats_path() -> str:
    return "/tasks/stats"


def task_path(task_id: int | str) -> str:
    """Single task: get, update (PATCH) and delete."""
    return f"/tasks/{task_id}"


# Calls that must go out without a bearer token.
UNAUTHENTICATED_PATHS = frozenset({login_path(), register_path()})

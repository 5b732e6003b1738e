"""Taskboard command-line client.

Usage:
  taskboard login alice@example.com
  taskboard add "Buy milk" --priority low
  taskboard list --status pending
  taskboard toggle 12
  taskboard rm 12 --yes
  taskboard logout

Settings come from TASKBOARD_* environment variables (a .env file in the
working directory is loaded first). The session credential persists between
invocations in the session file, so `login` once and every later command
runs signed in.

Exit codes: 0 success, 1 failure, 2 not signed in.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from collections.abc import Awaitable, Callable

from dotenv import load_dotenv
from pydantic import ValidationError
from taskboard_auth import AuthTransitionInProgress
from taskboard_shared.auth_models import LoginCredentials, RegisterCredentials
from taskboard_shared.config import ClientSettings
from taskboard_shared.errors import GatewayError, Unauthorized
from taskboard_shared.task_models import (
    Task,
    TaskCollectionView,
    TaskPriority,
    TaskQuery,
    TaskStatus,
)

from taskboard_app.context import TaskboardContext

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SIGNED_OUT = 2

STATUS_CHOICES = [s.value for s in TaskStatus]
PRIORITY_CHOICES = [p.value for p in TaskPriority]


class ConsoleNotifier:
    """Notifications as terminal output: successes to stdout, errors to stderr."""

    def success(self, message: str) -> None:
        print(message)

    def error(self, message: str) -> None:
        print(f"Error: {message}", file=sys.stderr)


def _prompt_confirmation(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _print_error(error: GatewayError) -> None:
    print(f"Error: {error.message}", file=sys.stderr)
    for field_error in error.field_errors:
        print(f"  {field_error.field}: {field_error.message}", file=sys.stderr)


def _print_tasks(view: TaskCollectionView) -> None:
    if not view.tasks:
        print("No tasks found.")
    else:
        print(f"{'ID':<8} {'Status':<10} {'Priority':<9} {'Title'}")
        print("-" * 60)
        for task in view.tasks:
            print(f"{task.id!s:<8} {task.status.value:<10} {task.priority.value:<9} {task.title}")
    print()
    print(
        f"Page {view.page}/{max(view.total_pages, 1)} ({view.total} tasks) | "
        f"{view.stats.completed} completed, {view.stats.pending} pending"
    )


# ============================================================================
# Commands
# ============================================================================


async def cmd_login(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    password = args.password or getpass.getpass("Password: ")
    state = await ctx.auth.login(LoginCredentials(email=args.email, password=password))
    print(f"Signed in as {state.user.email if state.user else args.email}")
    return EXIT_OK


async def cmd_register(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    password = args.password or getpass.getpass("Password: ")
    confirm = args.password or getpass.getpass("Confirm password: ")
    credentials = RegisterCredentials(
        email=args.email, password=password, confirm_password=confirm
    )
    await ctx.auth.register(credentials)
    print(f"Registered and signed in as {args.email}")
    return EXIT_OK


async def cmd_logout(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    await ctx.auth.logout()
    print("Signed out.")
    return EXIT_OK


async def cmd_whoami(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    user = ctx.auth.state.user
    if user is None:
        print("Not signed in.", file=sys.stderr)
        return EXIT_SIGNED_OUT
    print(f"{user.email} (id: {user.id})")
    return EXIT_OK


async def cmd_list(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    try:
        query = TaskQuery(
            status=args.status,
            priority=args.priority,
            search=args.search,
            page=args.page,
            limit=args.limit,
        )
    except ValidationError as e:
        for err in e.errors():
            name = ".".join(str(part) for part in err["loc"]) or "query"
            print(f"Error: --{name}: {err['msg']}", file=sys.stderr)
        return EXIT_FAILED
    _print_tasks(await ctx.cache.read(query))
    return EXIT_OK


async def cmd_stats(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    stats = (await ctx.cache.read()).stats
    print(f"Total:     {stats.total}")
    print(f"Pending:   {stats.pending}")
    print(f"Completed: {stats.completed}")
    print(f"Priority:  {stats.high_priority} high, {stats.medium_priority} medium, "
          f"{stats.low_priority} low")
    return EXIT_OK


async def cmd_add(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    data = {"title": args.title, "status": args.status, "priority": args.priority}
    if args.description is not None:
        data["description"] = args.description
    result = await ctx.mutations.create_task(data)
    if result.success and result.task is not None:
        print(f"  id: {result.task.id}")
    return EXIT_OK if result.success else EXIT_FAILED


async def cmd_edit(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    patch = {
        name: value
        for name, value in (
            ("title", args.title),
            ("description", args.description),
            ("status", args.status),
            ("priority", args.priority),
        )
        if value is not None
    }
    result = await ctx.mutations.update_task(args.id, patch)
    return EXIT_OK if result.success else EXIT_FAILED


async def cmd_toggle(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    task: Task = await ctx.gateway.get_task(args.id)
    result = await ctx.mutations.toggle_status(task)
    if result.success and result.task is not None:
        print(f"  {result.task.title}: {result.task.status.value}")
    return EXIT_OK if result.success else EXIT_FAILED


async def cmd_rm(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    def confirm() -> bool:
        return args.yes or _prompt_confirmation("Are you sure you want to delete this task?")

    result = await ctx.mutations.delete_task(args.id, confirm=confirm)
    if result.cancelled:
        print("Cancelled.")
    return EXIT_OK if result.success or result.cancelled else EXIT_FAILED


async def cmd_passwd(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    current = args.current or getpass.getpass("Current password: ")
    new = args.new or getpass.getpass("New password: ")
    await ctx.auth.change_password(current, new)
    print("Password updated.")
    return EXIT_OK


Command = Callable[[argparse.Namespace, TaskboardContext], Awaitable[int]]

# Commands usable without a session; everything else requires one.
PUBLIC_COMMANDS: dict[str, Command] = {
    "login": cmd_login,
    "register": cmd_register,
    "logout": cmd_logout,
}

SESSION_COMMANDS: dict[str, Command] = {
    "whoami": cmd_whoami,
    "list": cmd_list,
    "stats": cmd_stats,
    "add": cmd_add,
    "edit": cmd_edit,
    "toggle": cmd_toggle,
    "rm": cmd_rm,
    "passwd": cmd_passwd,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskboard", description="Taskboard client")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Sign in")
    p.add_argument("email")
    p.add_argument("--password", help="Prompted for when omitted")

    p = sub.add_parser("register", help="Create an account and sign in")
    p.add_argument("email")
    p.add_argument("--password", help="Prompted for (twice) when omitted")

    sub.add_parser("logout", help="Sign out and forget the session")
    sub.add_parser("whoami", help="Show the signed-in account")

    p = sub.add_parser("list", help="List tasks")
    p.add_argument("--status", choices=STATUS_CHOICES)
    p.add_argument("--priority", choices=PRIORITY_CHOICES)
    p.add_argument("--search")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int, default=10)

    sub.add_parser("stats", help="Show task statistics")

    p = sub.add_parser("add", help="Create a task")
    p.add_argument("title")
    p.add_argument("--description")
    p.add_argument("--status", choices=STATUS_CHOICES, default=TaskStatus.PENDING.value)
    p.add_argument("--priority", choices=PRIORITY_CHOICES, default=TaskPriority.MEDIUM.value)

    p = sub.add_parser("edit", help="Update a task")
    p.add_argument("id")
    p.add_argument("--title")
    p.add_argument("--description")
    p.add_argument("--status", choices=STATUS_CHOICES)
    p.add_argument("--priority", choices=PRIORITY_CHOICES)

    p = sub.add_parser("toggle", help="Flip a task between pending and completed")
    p.add_argument("id")

    p = sub.add_parser("rm", help="Delete a task")
    p.add_argument("id")
    p.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    p = sub.add_parser("passwd", help="Change your password")
    p.add_argument("--current")
    p.add_argument("--new")

    return parser


async def run_command(args: argparse.Namespace, ctx: TaskboardContext) -> int:
    """Dispatch a parsed command against a started context."""
    command = PUBLIC_COMMANDS.get(args.command)
    if command is None:
        if not ctx.auth.state.is_authenticated:
            print("Not signed in. Run `taskboard login <email>` first.", file=sys.stderr)
            return EXIT_SIGNED_OUT
        command = SESSION_COMMANDS[args.command]

    try:
        return await command(args, ctx)
    except Unauthorized as e:
        if args.command in PUBLIC_COMMANDS:
            _print_error(e)
            return EXIT_FAILED
        ctx.auth.handle_unauthorized()
        print(f"Session expired: {e.message}. Please sign in again.", file=sys.stderr)
        return EXIT_SIGNED_OUT
    except GatewayError as e:
        _print_error(e)
        return EXIT_FAILED
    except AuthTransitionInProgress as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED


async def _run(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with TaskboardContext(settings, notifier=ConsoleNotifier()) as ctx:
        return await run_command(args, ctx)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint: parse arguments, run the command, exit with its code."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        settings = ClientSettings.from_env()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)

    logging.basicConfig(level=settings.log_level)
    sys.exit(asyncio.run(_run(args, settings)))


if __name__ == "__main__":
    main()

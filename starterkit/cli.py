"""Command-line entry point.

Usage::

    starterkit setup my-shop
    starterkit check
    starterkit deploy prod
    starterkit clean --preserve-db
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Coroutine, NoReturn

from rich.prompt import Confirm

from .cleanup import clean_everything, clean_project
from .compose import ComposeRunner
from .config import Config
from .deploy import ENVIRONMENTS, DeployPipeline
from .errors import StarterKitError, ValidationError
from .renamer import setup_project
from .toolcheck import ToolChecker
from .utils import console, print_error, print_info, print_success, print_warning, relative_display

# Commands that may run before ``setup`` has created the root ``.env``.
PRE_SETUP_COMMANDS = frozenset({"help", "check", "setup"})


class _Parser(argparse.ArgumentParser):
    """Exit with status 1 on usage errors, like every other failure."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print_error(f"error: {message}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="starterkit",
        description="Set up, deploy and clean the e-commerce starter stack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  starterkit setup my-shop\n"
            "  starterkit deploy prod --up-arg=--force-recreate\n"
            "  starterkit clean --preserve-db\n"
        ),
    )
    parser.add_argument(
        "--project-dir", "-C",
        default=None,
        help="Project root (default: current directory)",
    )
    sub = parser.add_subparsers(dest="command", metavar="command")

    sub.add_parser("help", help="Show this help message")

    check = sub.add_parser("check", help="Check that the required tools are installed")
    check.add_argument(
        "--no-update",
        action="store_true",
        help="Do not upgrade an outdated package manager",
    )

    setup = sub.add_parser("setup", help="Set up the project for the first time")
    setup.add_argument("name", nargs="?", help="New project name (npm package name rules)")

    clean = sub.add_parser("clean", help="Remove project containers, volumes and images")
    clean.add_argument("--preserve-db", action="store_true", help="Keep the database volume")
    clean.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    clean_all = sub.add_parser("clean:all", help="Remove ALL containers, volumes and images")
    clean_all.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    build = sub.add_parser("build", help="Build service images")
    build.add_argument("services", nargs="*")

    up = sub.add_parser("up", help="Start services and wait until they are running")
    up.add_argument("services", nargs="*")
    up.add_argument("--no-wait", action="store_true", help="Return right after starting")

    down = sub.add_parser("down", help="Stop and remove service containers")
    down.add_argument("services", nargs="*")

    logs = sub.add_parser("logs", help="Show service logs")
    logs.add_argument("services", nargs="*")
    logs.add_argument("--no-follow", action="store_true", help="Print logs and exit")

    sub.add_parser("ps", help="List service containers")

    restart = sub.add_parser("restart", help="Restart services")
    restart.add_argument("services", nargs="*")

    deploy = sub.add_parser("deploy", help="Rebuild and redeploy backend and storefront")
    deploy.add_argument("environment", nargs="?", default="dev", choices=ENVIRONMENTS)
    deploy.add_argument(
        "--up-arg",
        action="append",
        default=[],
        help="Extra option passed to 'docker compose up' (repeatable)",
    )

    sub.add_parser("create-admin", help="Create the initial admin user")

    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_setup(config: Config, name: str | None) -> int:
    report = setup_project(config.project_root, name, config.rename)
    root = config.project_root

    for path in report.files_changed:
        print_info(f"Updated: {relative_display(path, root)}")
    for path in report.env_files_created:
        print_info(f"Created {path.name} file in {relative_display(path.parent, root)}")
    if report.skipped_binary:
        print_info(f"Skipped {len(report.skipped_binary)} binary file(s)")

    if not report.ok:
        for error in report.errors:
            print_error(f"Error: {error}")
        print_error(f"Project setup finished with {len(report.errors)} error(s)")
        return 1

    print_success("Project setup complete")
    print_info(
        "Note: The directory name itself was not changed. "
        "You may want to rename it manually if desired."
    )
    return 0


async def cmd_check(config: Config, update: bool) -> int:
    checker = ToolChecker(config.tools, update_package_manager=update)
    statuses = await checker.check_all()
    if all(status.ok for status in statuses):
        print_success("All required software is installed.")
        return 0
    return 1


async def cmd_create_admin(config: Config, runner: ComposeRunner) -> int:
    if not config.admin_email or not config.admin_password:
        raise ValidationError("ADMIN_EMAIL and ADMIN_PASSWORD must be set in the .env file.")
    container = await runner.find_container(config.deploy.admin_container)
    if container is None:
        print_error(
            f"{config.deploy.admin_container} container is not running. Please start it first."
        )
        return 1
    await runner.exec_container(
        container,
        ["medusa", "user", "--email", config.admin_email, "--password", config.admin_password],
    )
    return 0


async def cmd_up(runner: ComposeRunner, services: list[str], wait: bool) -> int:
    await runner.up(services)
    if wait:
        print_info("Waiting for all services to be healthy...")
        await runner.wait_until_running()
        print_success("All services are healthy!")
    return 0


def _confirm(question: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    return Confirm.ask(question, default=False, console=console)


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    return asyncio.run(coro)


def dispatch(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    command = args.command
    if command is None:
        print_error("error: no command provided")
        parser.print_usage(sys.stderr)
        return 1
    if command == "help":
        parser.print_help()
        return 0

    project_root = Path(args.project_dir).resolve() if args.project_dir else Path.cwd()
    config = Config.load(project_root)

    if command not in PRE_SETUP_COMMANDS and not config.is_setup_complete():
        print_error(
            "Error: Project setup has not been completed. "
            "Please run 'starterkit setup <project-name>' first."
        )
        return 1

    if command == "check":
        return _run(cmd_check(config, update=not args.no_update))
    if command == "setup":
        return cmd_setup(config, args.name)

    runner = ComposeRunner(project_dir=config.project_root)

    if command == "clean":
        if not _confirm(
            "Are you sure you want to remove project-related containers, images, and volumes?",
            args.yes,
        ):
            print_warning("Aborted.")
            return 0
        _run(clean_project(runner, config, preserve_db=args.preserve_db))
        return 0
    if command == "clean:all":
        if not _confirm(
            "This will remove ALL containers, images, and volumes. Are you really sure?",
            args.yes,
        ):
            print_warning("Aborted.")
            return 0
        _run(clean_everything(runner, config))
        return 0
    if command == "deploy":
        pipeline = DeployPipeline(config, environment=args.environment, up_args=args.up_arg)
        _run(pipeline.run())
        return 0
    if command == "create-admin":
        return _run(cmd_create_admin(config, runner))
    if command == "build":
        _run(runner.build(args.services))
        return 0
    if command == "up":
        return _run(cmd_up(runner, args.services, wait=not args.no_wait))
    if command == "down":
        _run(runner.down(args.services))
        return 0
    if command == "logs":
        _run(runner.logs(follow=not args.no_follow, services=args.services))
        return 0
    if command == "ps":
        _run(runner.ps())
        return 0
    if command == "restart":
        _run(runner.restart(args.services))
        return 0

    print_error(f"error: unknown command: {command}")
    return 1


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``starterkit`` and ``python -m starterkit``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return dispatch(args, parser)
    except StarterKitError as exc:
        print_error(f"Error: {exc}")
        return 1
    except KeyboardInterrupt:
        print_warning("Interrupted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())

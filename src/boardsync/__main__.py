"""CLI entry point for boardsync."""

import argparse
from pathlib import Path

from . import __version__
from .config import Settings
from .logging import setup_logging
from .models import Priority


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="boardsync",
        description="Kanban boards synced with a hosted backend",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--seed-file",
        type=Path,
        default=None,
        help="YAML boards for the in-memory backend (ignored when BOARDSYNC_DATA_URL is set)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("boards", help="List boards")

    show = sub.add_parser("show", help="Show a board's columns and tasks")
    show.add_argument("board_id")

    create = sub.add_parser("create-board", help="Create a board with default columns")
    create.add_argument("title")

    add_task = sub.add_parser("add-task", help="Add a task to a column")
    add_task.add_argument("board_id")
    add_task.add_argument("column_id")
    add_task.add_argument("title")
    add_task.add_argument("--description", default="")
    add_task.add_argument(
        "--priority",
        choices=[p.value for p in Priority],
        default=Priority.MEDIUM.value,
    )
    add_task.add_argument("--tag", action="append", default=[], help="Repeatable")

    move = sub.add_parser("move-task", help="Move a task to another column")
    move.add_argument("task_id")
    move.add_argument("column_id", help="Destination column")

    comment = sub.add_parser("comment", help="Comment on a task")
    comment.add_argument("task_id")
    comment.add_argument("text")

    share = sub.add_parser("share", help="Print a board's shareable link")
    share.add_argument("board_id")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file
    if args.seed_file:
        settings_kwargs["seed_file"] = args.seed_file

    settings = Settings(**settings_kwargs)
    setup_logging(settings.verbose, settings.log_file)

    # Import here so --help stays fast
    from .cli.commands import run_command

    raise SystemExit(run_command(settings, args))


if __name__ == "__main__":
    main()

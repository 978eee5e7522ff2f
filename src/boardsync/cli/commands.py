"""CLI subcommands driving the board store."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..config import Settings
from ..models import Board
from ..repositories import create_data_service
from ..services import BoardStore, Notification, NotificationCenter
from .output import error, header, info, priority_label, success

logger = logging.getLogger(__name__)

Command = Callable[[BoardStore, argparse.Namespace], Awaitable[int]]


def _report(notification: Notification) -> None:
    if notification.is_error:
        error(notification.message)
    else:
        success(notification.message)


async def cmd_boards(store: BoardStore, args: argparse.Namespace) -> int:
    """List boards, marking the active one."""
    if not store.boards:
        info("No boards yet")
        return 0
    for board in store.boards:
        marker = "*" if board.id == store.active_board_id else " "
        visibility = "public" if board.is_public else "private"
        print(f"{marker} {board.id}  {board.title}  ({board.task_count} tasks, {visibility})")
    return 0


def _print_board(board: Board) -> None:
    header(f"{board.title}  [{board.id}]")
    for column in board.columns:
        print()
        header(f"  {column.title} ({len(column.tasks)})  [{column.id}]")
        for task in column.tasks:
            tags = f"  #{' #'.join(task.tags)}" if task.tags else ""
            comments = f"  ({len(task.comments)} comments)" if task.comments else ""
            print(f"    {priority_label(task.priority)} {task.title}{tags}{comments}  [{task.id}]")


async def cmd_show(store: BoardStore, args: argparse.Namespace) -> int:
    """Print a board's columns and tasks."""
    board = store.set_active_board(args.board_id)
    if board is None:
        error(f"Board not found: {args.board_id}")
        return 1
    _print_board(board)
    return 0


async def cmd_create_board(store: BoardStore, args: argparse.Namespace) -> int:
    board = await store.create_board(args.title)
    if board is None:
        return 1
    _print_board(board)
    return 0


async def cmd_add_task(store: BoardStore, args: argparse.Namespace) -> int:
    task = await store.create_task(
        args.column_id,
        args.board_id,
        args.title,
        args.description,
        priority=args.priority,
        tags=args.tag,
    )
    if task is None:
        return 1
    info(f"Task id: {task.id}")
    return 0


async def cmd_move_task(store: BoardStore, args: argparse.Namespace) -> int:
    location = store.find_task_location(args.task_id)
    if location is None:
        error(f"Task not found: {args.task_id}")
        return 1
    _, column, _ = location
    task = await store.move_task(args.task_id, column.id, args.column_id)
    return 0 if task is not None and task.column_id == args.column_id else 1


async def cmd_comment(store: BoardStore, args: argparse.Namespace) -> int:
    comment = await store.add_comment(args.task_id, args.text)
    return 0 if comment is not None else 1


async def cmd_share(store: BoardStore, args: argparse.Namespace) -> int:
    if store.get_board(args.board_id) is None:
        error(f"Board not found: {args.board_id}")
        return 1
    print(store.get_shareable_link(args.board_id))
    return 0


COMMANDS: dict[str, Command] = {
    "boards": cmd_boards,
    "show": cmd_show,
    "create-board": cmd_create_board,
    "add-task": cmd_add_task,
    "move-task": cmd_move_task,
    "comment": cmd_comment,
    "share": cmd_share,
}


async def _run(settings: Settings, args: argparse.Namespace) -> int:
    notifier = NotificationCenter()
    notifier.add_listener(_report)
    async with BoardStore(create_data_service(settings), notifier, settings) as store:
        await store.load()
        if notifier.errors:
            return 1
        return await COMMANDS[args.command](store, args)


def run_command(settings: Settings, args: argparse.Namespace) -> int:
    """Load the store, run one subcommand and return its exit code."""
    logger.debug("Running command: %s", args.command)
    return asyncio.run(_run(settings, args))

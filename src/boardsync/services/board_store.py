"""Board store: local mirror of server-held boards, columns, tasks and comments."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError

from ..config import Settings
from ..models import (
    DEFAULT_COLUMN_TITLES,
    Board,
    Column,
    Comment,
    CommentUser,
    Priority,
    Task,
    TaskUpdate,
)
from ..repositories import BOARDS, COLUMNS, COMMENTS, TASKS, DataServiceError
from ..repositories.protocol import DataServiceProtocol
from ..utils import build_share_link, now_utc
from .notifications import NotificationCenter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSnapshot:
    """State handed to subscribers after every change."""

    boards: tuple[Board, ...]
    active_board: Board | None
    is_loading: bool

    @property
    def active_board_id(self) -> str | None:
        return self.active_board.id if self.active_board else None


Subscriber = Callable[[StoreSnapshot], None]

Model = TypeVar("Model", Board, Column, Task, Comment)


def _decode(model: type[Model], row: Any) -> Model:
    """Build a model from a backend row; malformed rows are data service errors."""
    try:
        return model.from_row(row)
    except (AttributeError, KeyError, TypeError, ValidationError) as e:
        raise DataServiceError(f"Malformed {model.__name__.lower()} row: {e!r}") from e


class BoardStore:
    """
    Owns the canonical boards and the identity of the active board.

    Every mutating operation persists through the data service first and
    only then replaces the affected board wholesale: the board is deep
    copied, edited and swapped into the canonical mapping in one step.
    Published boards are never edited in place, so snapshots handed to
    subscribers stay stable. Treat returned models as read-only.

    The active board is looked up by id rather than kept as a second copy,
    so it always equals the canonical entry. Mutations are serialized per
    board with an ``asyncio.Lock``; operations on different boards run
    concurrently.

    Persistence failures (``DataServiceError``, which also covers malformed
    backend rows) are logged, reported as an error notification, and leave
    state untouched. Operations return the affected entity (or ``True``
    for deletes) on success and ``None`` (or ``False``) on failure.
    """

    def __init__(
        self,
        data_service: DataServiceProtocol,
        notifier: NotificationCenter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.data = data_service
        self.notifier = notifier or NotificationCenter()
        self.settings = settings or Settings()

        self._boards: dict[str, Board] = {}
        self._active_board_id: str | None = None
        self._is_loading = True

        # id -> owning board id (comments map to their task id)
        self._column_index: dict[str, str] = {}
        self._task_index: dict[str, str] = {}
        self._comment_index: dict[str, str] = {}

        self._locks: dict[str, asyncio.Lock] = {}
        # board id -> operations holding or waiting for its lock
        self._lock_users: dict[str, int] = {}
        self._subscribers: list[Subscriber] = []

        # Only one load at a time; boards created or deleted meanwhile are
        # recorded so the fetched state cannot undo them
        self._load_lock = asyncio.Lock()
        self._created_while_loading: set[str] = set()
        self._deleted_while_loading: set[str] = set()

    async def __aenter__(self) -> BoardStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the data service."""
        self._subscribers.clear()
        await self.data.close()

    # --- Reads ---

    @property
    def boards(self) -> list[Board]:
        """All boards in canonical order."""
        return list(self._boards.values())

    @property
    def active_board(self) -> Board | None:
        """The board currently shown to the user."""
        if self._active_board_id is None:
            return None
        return self._boards.get(self._active_board_id)

    @property
    def active_board_id(self) -> str | None:
        return self._active_board_id

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def get_board(self, board_id: str) -> Board | None:
        return self._boards.get(board_id)

    def get_column(self, column_id: str) -> Column | None:
        board = self._boards.get(self._column_index.get(column_id, ""))
        return board.get_column(column_id) if board else None

    def get_task(self, task_id: str) -> Task | None:
        location = self.find_task_location(task_id)
        return location[2] if location else None

    def find_task_location(self, task_id: str) -> tuple[Board, Column, Task] | None:
        """Locate a task with its board and column."""
        board = self._boards.get(self._task_index.get(task_id, ""))
        if board is None:
            return None
        found = board.find_task(task_id)
        if found is None:
            return None
        column, task = found
        return board, column, task

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            boards=tuple(self._boards.values()),
            active_board=self.active_board,
            is_loading=self._is_loading,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a state listener; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # --- Loading ---

    async def load(self) -> None:
        """
        Fetch every board with its columns, tasks and comments.

        The first call ends the loading phase whatever its outcome. The
        locks of all boards known when the load starts are held until the
        fetched state is swapped in, so pending mutations on them land
        first and queued ones see the refreshed boards.

        Boards created locally during a load keep their local version and
        are kept after the fetched ones if the fetch missed them; boards
        deleted during a load stay deleted. The first load also keeps boards
        created before it, as they were made during the loading phase.
        """
        logger.info("Loading boards")
        async with self._load_lock:
            self._created_while_loading.clear()
            self._deleted_while_loading.clear()
            async with self._locked(*self._boards):
                first_load = self._is_loading
                try:
                    fetched = await self._fetch_boards()
                except DataServiceError as e:
                    self._fail("load boards", e)
                else:
                    self._replace_boards(fetched, first_load)
                finally:
                    self._is_loading = False
                    self._created_while_loading.clear()
                    self._deleted_while_loading.clear()
        self._publish()

    async def _fetch_boards(self) -> list[Board]:
        boards: list[Board] = []
        for board_row in await self.data.list_boards():
            board = _decode(Board, board_row)
            for column_row in await self.data.list_columns(board.id):
                column = _decode(Column, column_row)
                for task_row in await self.data.list_tasks(column.id):
                    task = _decode(Task, task_row)
                    task.comments = [
                        _decode(Comment, row) for row in await self.data.list_comments(task.id)
                    ]
                    column.tasks.append(task)
                board.columns.append(column)
            boards.append(board)
        return boards

    def _replace_boards(self, fetched: list[Board], first_load: bool) -> None:
        created = self._created_while_loading
        local_only = set(self._boards) if first_load else created
        fetched_ids = {board.id for board in fetched}

        boards = [
            self._boards[board.id] if board.id in created and board.id in self._boards else board
            for board in fetched
            if board.id not in self._deleted_while_loading
        ]
        boards += [
            board
            for board in self._boards.values()
            if board.id in local_only and board.id not in fetched_ids
        ]

        self._boards.clear()
        self._column_index.clear()
        self._task_index.clear()
        self._comment_index.clear()
        for board in boards:
            self._put_board(board)

        if self._active_board_id not in self._boards:
            self._active_board_id = None
        if self._active_board_id is None and self._boards:
            self._active_board_id = next(iter(self._boards))
        logger.info("Loaded %d boards (active=%s)", len(self._boards), self._active_board_id)

    # --- Boards ---

    async def create_board(self, title: str) -> Board | None:
        """Create a board with the default columns and make it active."""
        try:
            board = _decode(Board, await self.data.insert(BOARDS, Board.insert_row(title)))
        except DataServiceError as e:
            self._fail("create board", e)
            return None

        async with self._locked(board.id):
            try:
                for position, column_title in enumerate(DEFAULT_COLUMN_TITLES):
                    row = await self.data.insert(
                        COLUMNS, Column.insert_row(column_title, board.id, position)
                    )
                    board.columns.append(_decode(Column, row))
            except DataServiceError as e:
                await self._discard_row(BOARDS, board.id)
                self._fail("create board", e)
                return None

            self._put_board(board)
            if self._load_lock.locked():
                self._created_while_loading.add(board.id)
            self._active_board_id = board.id
        logger.info("Board created: %s (%s)", board.id, board.title)
        self._succeed("Board created successfully")
        return board

    async def update_board(self, board_id: str, title: str) -> Board | None:
        """Rename a board."""
        async with self._locked(board_id):
            if board_id not in self._boards:
                self._reject("update board", f"board not found: {board_id}")
                return None
            try:
                await self.data.update(BOARDS, board_id, {"title": title})
            except DataServiceError as e:
                self._fail("update board", e)
                return None

            def apply(board: Board) -> None:
                board.title = title

            board = self._commit(board_id, apply)
        logger.info("Board renamed: %s -> %s", board_id, title)
        self._succeed("Board updated successfully")
        return board

    async def delete_board(self, board_id: str) -> bool:
        """Delete a board; the first remaining board becomes active if needed."""
        async with self._locked(board_id):
            if board_id not in self._boards:
                self._reject("delete board", f"board not found: {board_id}")
                return False
            try:
                await self.data.delete(BOARDS, board_id)
            except DataServiceError as e:
                self._fail("delete board", e)
                return False

            self._drop_board(board_id)
            if self._load_lock.locked():
                self._deleted_while_loading.add(board_id)
            if self._active_board_id == board_id:
                self._active_board_id = next(iter(self._boards), None)
        logger.info("Board deleted: %s (active=%s)", board_id, self._active_board_id)
        self._succeed("Board deleted successfully")
        return True

    async def toggle_board_visibility(self, board_id: str, is_public: bool) -> Board | None:
        """Make a board public or private."""
        async with self._locked(board_id):
            if board_id not in self._boards:
                self._reject("update board visibility", f"board not found: {board_id}")
                return None
            try:
                await self.data.update(BOARDS, board_id, {"is_public": is_public})
            except DataServiceError as e:
                self._fail("update board visibility", e)
                return None

            def apply(board: Board) -> None:
                board.is_public = is_public

            board = self._commit(board_id, apply)
        logger.info("Board visibility: %s is_public=%s", board_id, is_public)
        self._succeed("Board is now public" if is_public else "Board is now private")
        return board

    def set_active_board(self, board_id: str) -> Board | None:
        """Show the given board; unknown ids clear the selection."""
        board = self._boards.get(board_id)
        self._active_board_id = board.id if board else None
        if board is None:
            logger.debug("set_active_board: board not found: %s", board_id)
        self._publish()
        return board

    def get_shareable_link(self, board_id: str) -> str:
        """Public link to a board for the read-only shared view."""
        return build_share_link(self.settings.origin, board_id)

    # --- Columns ---

    async def create_column(self, title: str, board_id: str) -> Column | None:
        """Append a column to a board."""
        async with self._locked(board_id):
            board = self._boards.get(board_id)
            if board is None:
                self._reject("create column", f"board not found: {board_id}")
                return None
            try:
                row = await self.data.insert(
                    COLUMNS, Column.insert_row(title, board_id, len(board.columns))
                )
                column = _decode(Column, row)
            except DataServiceError as e:
                self._fail("create column", e)
                return None

            def apply(board: Board) -> None:
                board.columns.append(column)

            self._commit(board_id, apply)
        logger.info("Column created: %s on board %s", column.id, board_id)
        self._succeed("Column created successfully")
        return self.get_column(column.id)

    async def update_column(self, column_id: str, title: str) -> Column | None:
        """Rename a column."""
        async with self._scope(self._column_index, column_id) as board_id:
            if board_id is None:
                self._reject("update column", f"column not found: {column_id}")
                return None
            try:
                await self.data.update(COLUMNS, column_id, {"title": title})
            except DataServiceError as e:
                self._fail("update column", e)
                return None

            def apply(board: Board) -> None:
                column = board.get_column(column_id)
                if column is not None:
                    column.title = title

            self._commit(board_id, apply)
        logger.info("Column renamed: %s -> %s", column_id, title)
        self._succeed("Column updated successfully")
        return self.get_column(column_id)

    async def delete_column(self, column_id: str) -> bool:
        """Delete a column together with its tasks."""
        async with self._scope(self._column_index, column_id) as board_id:
            if board_id is None:
                self._reject("delete column", f"column not found: {column_id}")
                return False
            try:
                await self.data.delete(COLUMNS, column_id)
            except DataServiceError as e:
                self._fail("delete column", e)
                return False

            def apply(board: Board) -> None:
                board.columns = [c for c in board.columns if c.id != column_id]

            self._commit(board_id, apply)
        logger.info("Column deleted: %s", column_id)
        self._succeed("Column deleted successfully")
        return True

    # --- Tasks ---

    async def create_task(
        self,
        column_id: str,
        board_id: str,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        tags: list[str] | None = None,
    ) -> Task | None:
        """Append a new task to a column."""
        row = Task.insert_row(title, column_id, board_id, description, priority, tags)
        async with self._locked(board_id):
            board = self._boards.get(board_id)
            if board is None or board.get_column(column_id) is None:
                self._reject("create task", f"column not found: {board_id}/{column_id}")
                return None
            try:
                task = _decode(Task, await self.data.insert(TASKS, row))
            except DataServiceError as e:
                self._fail("create task", e)
                return None

            def apply(board: Board) -> None:
                column = board.get_column(column_id)
                if column is not None:
                    column.tasks.append(task)

            self._commit(board_id, apply)
        logger.info(
            "Task created: %s in column %s (priority=%s)", task.id, column_id, row["priority"]
        )
        self._succeed("Task created successfully")
        return self.get_task(task.id)

    async def update_task(
        self, task_id: str, update: TaskUpdate | None = None, **fields: Any
    ) -> Task | None:
        """
        Change some fields of a task.

        Accepts either a ``TaskUpdate`` or keyword fields (title, description,
        priority, tags, column_id). Only supplied fields are persisted and
        merged; a new ``column_id`` moves the task to the end of that column
        on the same board. Passing both raises ``TypeError``.
        """
        if update is not None and fields:
            raise TypeError("update_task takes a TaskUpdate or keyword fields, not both")
        if update is None:
            update = TaskUpdate(**fields)
        changes = update.changes()
        if not changes:
            logger.debug("update_task: nothing to change for %s", task_id)
            return self.get_task(task_id)

        async with self._scope(self._task_index, task_id) as board_id:
            if board_id is None:
                self._reject("update task", f"task not found: {task_id}")
                return None

            target_column_id = changes.get("column_id")
            if target_column_id is not None:
                if self._column_index.get(target_column_id) != board_id:
                    self._reject("update task", f"column not on board: {target_column_id}")
                    return None
            try:
                await self.data.update(TASKS, task_id, update.to_row())
            except DataServiceError as e:
                self._fail("update task", e)
                return None

            def apply(board: Board) -> None:
                found = board.find_task(task_id)
                if found is None:
                    return
                column, task = found
                merged = task.model_copy(update=changes)
                index = column.tasks.index(task)
                if target_column_id is None or target_column_id == column.id:
                    column.tasks[index] = merged
                    return
                del column.tasks[index]
                destination = board.get_column(target_column_id)
                if destination is not None:
                    destination.tasks.append(merged)

            self._commit(board_id, apply)
        logger.info("Task updated: %s fields=%s", task_id, sorted(changes))
        self._succeed("Task updated successfully")
        return self.get_task(task_id)

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task and its comments."""
        async with self._scope(self._task_index, task_id) as board_id:
            if board_id is None:
                self._reject("delete task", f"task not found: {task_id}")
                return False
            try:
                await self.data.delete(TASKS, task_id)
            except DataServiceError as e:
                self._fail("delete task", e)
                return False

            def apply(board: Board) -> None:
                for column in board.columns:
                    column.tasks = [t for t in column.tasks if t.id != task_id]

            self._commit(board_id, apply)
        logger.info("Task deleted: %s", task_id)
        self._succeed("Task deleted successfully")
        return True

    async def move_task(
        self, task_id: str, source_column_id: str, destination_column_id: str
    ) -> Task | None:
        """
        Move a task from the end of one column's sequence to another's.

        Moving onto the same column is a no-op without a backend call. A task
        that is not in ``source_column_id`` (or an unknown destination) is
        silently ignored. Columns may belong to different boards.
        """
        if source_column_id == destination_column_id:
            logger.debug("move_task: source equals destination for %s", task_id)
            return self.get_task(task_id)

        while True:
            source_board_id = self._task_index.get(task_id)
            destination_board_id = self._column_index.get(destination_column_id)
            if source_board_id is None or destination_board_id is None:
                logger.debug("move_task: task or destination unknown: %s", task_id)
                return None

            async with self._locked(source_board_id, destination_board_id):
                if (
                    self._task_index.get(task_id) != source_board_id
                    or self._column_index.get(destination_column_id) != destination_board_id
                ):
                    # Moved while waiting for the lock
                    continue

                source = self._boards[source_board_id].get_column(source_column_id)
                if source is None or source.get_task(task_id) is None:
                    logger.debug("move_task: %s not in column %s", task_id, source_column_id)
                    return None

                fields: dict[str, Any] = {"column_id": destination_column_id}
                if destination_board_id != source_board_id:
                    fields["board_id"] = destination_board_id
                try:
                    await self.data.update(TASKS, task_id, fields)
                except DataServiceError as e:
                    self._fail("move task", e)
                    return None

                self._apply_move(
                    task_id,
                    source_board_id,
                    source_column_id,
                    destination_board_id,
                    destination_column_id,
                )
                break

        logger.info(
            "Task moved: %s (%s -> %s)", task_id, source_column_id, destination_column_id
        )
        self._succeed("Task moved")
        return self.get_task(task_id)

    def _apply_move(
        self,
        task_id: str,
        source_board_id: str,
        source_column_id: str,
        destination_board_id: str,
        destination_column_id: str,
    ) -> None:
        moved: list[Task] = []

        def take(board: Board) -> None:
            column = board.get_column(source_column_id)
            if column is None:
                return
            task = column.get_task(task_id)
            if task is None:
                return
            column.tasks.remove(task)
            moved.append(
                task.model_copy(
                    update={"column_id": destination_column_id, "board_id": destination_board_id}
                )
            )

        def put(board: Board) -> None:
            column = board.get_column(destination_column_id)
            if column is not None and moved:
                column.tasks.append(moved[0])

        if source_board_id == destination_board_id:

            def both(board: Board) -> None:
                take(board)
                put(board)

            self._commit(source_board_id, both)
        else:
            self._commit(source_board_id, take)
            self._commit(destination_board_id, put)

    # --- Comments ---

    async def add_comment(self, task_id: str, text: str) -> Comment | None:
        """Add a comment at the top of a task's thread."""
        async with self._scope(self._task_index, task_id) as board_id:
            if board_id is None:
                self._reject("add comment", f"task not found: {task_id}")
                return None
            author = CommentUser(name=self.settings.user_name, avatar=self.settings.user_avatar)
            payload = Comment.insert_row(text, task_id, author, now_utc())
            try:
                row = await self.data.insert(COMMENTS, payload)
                # Server-side timestamp wins when the backend returns one
                comment = _decode(Comment, {**payload, **row})
            except DataServiceError as e:
                self._fail("add comment", e)
                return None

            def apply(board: Board) -> None:
                found = board.find_task(task_id)
                if found is not None:
                    found[1].comments.insert(0, comment)

            self._commit(board_id, apply)
        logger.info("Comment added: %s on task %s", comment.id, task_id)
        self._succeed("Comment added")
        return comment

    async def delete_comment(self, comment_id: str, task_id: str) -> bool:
        """Remove a comment from the named task."""
        async with self._scope(self._task_index, task_id) as board_id:
            if board_id is None or self._comment_index.get(comment_id) != task_id:
                self._reject("delete comment", f"comment not found: {task_id}/{comment_id}")
                return False
            try:
                await self.data.delete(COMMENTS, comment_id)
            except DataServiceError as e:
                self._fail("delete comment", e)
                return False

            def apply(board: Board) -> None:
                found = board.find_task(task_id)
                if found is not None:
                    task = found[1]
                    task.comments = [c for c in task.comments if c.id != comment_id]

            self._commit(board_id, apply)
        logger.info("Comment deleted: %s from task %s", comment_id, task_id)
        self._succeed("Comment deleted")
        return True

    # --- State plumbing ---

    def _commit(self, board_id: str, mutate: Callable[[Board], None]) -> Board | None:
        """Apply ``mutate`` to a copy of the board and swap the copy in."""
        current = self._boards.get(board_id)
        if current is None:
            logger.warning("Board %s disappeared before commit", board_id)
            return None
        updated = current.model_copy(deep=True)
        mutate(updated)
        self._put_board(updated)
        return updated

    def _put_board(self, board: Board) -> None:
        previous = self._boards.get(board.id)
        if previous is not None:
            self._unindex(previous)
        self._boards[board.id] = board
        self._index(board)

    def _drop_board(self, board_id: str) -> None:
        board = self._boards.pop(board_id, None)
        if board is not None:
            self._unindex(board)

    def _index(self, board: Board) -> None:
        for _, task in board.iter_tasks():
            self._task_index[task.id] = board.id
            for comment in task.comments:
                self._comment_index[comment.id] = task.id
        for column in board.columns:
            self._column_index[column.id] = board.id

    def _unindex(self, board: Board) -> None:
        for column in board.columns:
            if self._column_index.get(column.id) == board.id:
                del self._column_index[column.id]
            for task in column.tasks:
                if self._task_index.get(task.id) == board.id:
                    del self._task_index[task.id]
                for comment in task.comments:
                    if self._comment_index.get(comment.id) == task.id:
                        del self._comment_index[comment.id]

    def _lock(self, board_id: str) -> asyncio.Lock:
        lock = self._locks.get(board_id)
        if lock is None:
            lock = self._locks[board_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _locked(self, *board_ids: str) -> AsyncIterator[None]:
        """Hold the locks of the given boards, acquired in id order."""
        ids = sorted(set(board_ids))
        for board_id in ids:
            self._lock_users[board_id] = self._lock_users.get(board_id, 0) + 1
        try:
            async with AsyncExitStack() as stack:
                for board_id in ids:
                    await stack.enter_async_context(self._lock(board_id))
                yield
        finally:
            for board_id in ids:
                self._release_lock(board_id)

    def _release_lock(self, board_id: str) -> None:
        """Forget a lock once nobody uses it and its board is gone."""
        users = self._lock_users[board_id] - 1
        if users:
            self._lock_users[board_id] = users
            return
        del self._lock_users[board_id]
        if board_id not in self._boards:
            self._locks.pop(board_id, None)

    @asynccontextmanager
    async def _scope(self, index: dict[str, str], key: str) -> AsyncIterator[str | None]:
        """Lock the board owning ``key``; yields its id, or None if unknown."""
        while True:
            board_id = index.get(key)
            if board_id is None:
                yield None
                return
            async with self._locked(board_id):
                if index.get(key) == board_id:
                    yield board_id
                    return

    async def _discard_row(self, table: str, row_id: str) -> None:
        try:
            await self.data.delete(table, row_id)
        except DataServiceError as e:
            logger.error("Could not remove partial %s row %s: %s", table, row_id, e)

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Store subscriber failed")

    def _succeed(self, message: str) -> None:
        self.notifier.success(message)
        self._publish()

    def _fail(self, action: str, error: Exception) -> None:
        logger.error("Failed to %s: %s", action, error)
        self.notifier.error(f"Failed to {action}")

    def _reject(self, action: str, reason: str) -> None:
        logger.warning("Cannot %s: %s", action, reason)
        self.notifier.error(f"Failed to {action}")

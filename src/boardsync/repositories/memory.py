"""In-memory data service, optionally seeded from a YAML file."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from ..utils import from_iso, timestamp, to_iso
from .errors import DataServiceError, DataServiceNotFoundError
from .protocol import BOARDS, COLUMNS, COMMENTS, TABLES, TASKS, Row

logger = logging.getLogger(__name__)

# Parent table and foreign key checked on insert
_PARENTS: dict[str, tuple[str, str]] = {
    COLUMNS: (BOARDS, "board_id"),
    TASKS: (COLUMNS, "column_id"),
    COMMENTS: (TASKS, "task_id"),
}


class InMemoryDataService:
    """
    Data service holding rows in process memory.

    Behaves like the hosted backend as far as the board store can tell:
    server-assigned ids, ``created_at`` stamps, foreign key checks on
    insert and cascading deletes. Every call yields to the event loop
    once so concurrent store operations interleave as they would
    over the network.
    """

    def __init__(self, latency: float = 0.0) -> None:
        """
        Initialize an empty data service.

        Args:
            latency: Seconds to sleep per call (0 still yields to the loop)
        """
        self.latency = latency
        self._tables: dict[str, dict[str, Row]] = {table: {} for table in TABLES}
        self.calls: list[tuple[str, str]] = []

    # --- Seeding ---

    @classmethod
    def from_yaml(cls, path: Path, latency: float = 0.0) -> InMemoryDataService:
        """Create a data service seeded from a nested YAML board file."""
        data = yaml.safe_load(path.read_text()) or {}
        service = cls(latency=latency)
        service.seed(data.get("boards", []))
        logger.info("Seeded in-memory data service from %s", path)
        return service

    def seed(self, boards: list[dict[str, Any]]) -> None:
        """
        Load nested board data synchronously.

        Each board may hold ``columns``, each column ``tasks`` and each task
        ``comments``; missing ids and timestamps are generated. Comment
        authors are read from a ``user`` mapping (``name``, ``avatar``).
        """
        for board in boards:
            board_row = self._store(
                BOARDS,
                {
                    "id": board.get("id"),
                    "title": board.get("title", ""),
                    "is_public": bool(board.get("is_public", False)),
                },
            )
            for position, column in enumerate(board.get("columns", [])):
                column_row = self._store(
                    COLUMNS,
                    {
                        "id": column.get("id"),
                        "title": column.get("title", ""),
                        "board_id": board_row["id"],
                        "position": position,
                    },
                )
                for task in column.get("tasks", []):
                    task_row = self._store(
                        TASKS,
                        {
                            "id": task.get("id"),
                            "title": task.get("title", ""),
                            "description": task.get("description", ""),
                            "column_id": column_row["id"],
                            "board_id": board_row["id"],
                            "priority": task.get("priority", "medium"),
                            "tags": list(task.get("tags", [])),
                        },
                    )
                    for comment in task.get("comments", []):
                        user = comment.get("user") or {}
                        created_at = comment.get("created_at")
                        if isinstance(created_at, datetime):
                            created_at = to_iso(created_at)
                        self._store(
                            COMMENTS,
                            {
                                "id": comment.get("id"),
                                "text": comment.get("text", ""),
                                "task_id": task_row["id"],
                                "created_at": str(created_at) if created_at else None,
                                "user_name": user.get("name", ""),
                                "user_avatar": user.get("avatar"),
                            },
                        )

    # --- Bulk reads ---

    async def list_boards(self) -> list[Row]:
        await self._tick("list", BOARDS)
        return self._rows(BOARDS)

    async def list_columns(self, board_id: str) -> list[Row]:
        await self._tick("list", COLUMNS)
        rows = self._rows(COLUMNS, board_id=board_id)
        return sorted(rows, key=lambda row: row.get("position", 0))

    async def list_tasks(self, column_id: str) -> list[Row]:
        await self._tick("list", TASKS)
        return self._rows(TASKS, column_id=column_id)

    async def list_comments(self, task_id: str) -> list[Row]:
        await self._tick("list", COMMENTS)
        rows = self._rows(COMMENTS, task_id=task_id)
        return sorted(rows, key=lambda row: from_iso(row["created_at"]), reverse=True)

    # --- Writes ---

    async def insert(self, table: str, row: Row) -> Row:
        await self._tick("insert", table)
        self._check_table(table)
        parent = _PARENTS.get(table)
        if parent is not None:
            parent_table, key = parent
            if row.get(key) not in self._tables[parent_table]:
                raise DataServiceError(
                    f"Foreign key violation: {table}.{key}={row.get(key)!r}"
                )
        return copy.deepcopy(self._store(table, dict(row)))

    async def update(self, table: str, row_id: str, fields: Row) -> Row:
        await self._tick("update", table)
        self._check_table(table)
        existing = self._tables[table].get(row_id)
        if existing is None:
            raise DataServiceNotFoundError(f"{table} row not found: {row_id}")
        existing.update(copy.deepcopy(fields))
        return copy.deepcopy(existing)

    async def delete(self, table: str, row_id: str) -> None:
        await self._tick("delete", table)
        self._check_table(table)
        self._cascade_delete(table, row_id)

    async def close(self) -> None:
        pass

    # --- Internals ---

    async def _tick(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        await asyncio.sleep(self.latency)

    def _check_table(self, table: str) -> None:
        if table not in self._tables:
            raise DataServiceError(f"Unknown table: {table}")

    def _store(self, table: str, row: Row) -> Row:
        if not row.get("id"):
            row["id"] = str(uuid.uuid4())
        if table != COLUMNS and not row.get("created_at"):
            row["created_at"] = timestamp()
        if row["id"] in self._tables[table]:
            raise DataServiceError(f"Duplicate key: {table}.id={row['id']!r}")
        self._tables[table][row["id"]] = row
        return row

    def _rows(self, table: str, **filters: str) -> list[Row]:
        return [
            copy.deepcopy(row)
            for row in self._tables[table].values()
            if all(row.get(key) == value for key, value in filters.items())
        ]

    def _cascade_delete(self, table: str, row_id: str) -> None:
        if self._tables[table].pop(row_id, None) is None:
            return
        for child_table, (parent_table, key) in _PARENTS.items():
            if parent_table != table:
                continue
            child_ids = [
                child_id
                for child_id, child in self._tables[child_table].items()
                if child.get(key) == row_id
            ]
            for child_id in child_ids:
                self._cascade_delete(child_table, child_id)

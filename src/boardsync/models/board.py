"""Board and column models."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, Field

from .task import Task

DEFAULT_COLUMN_TITLES = ("To Do", "In Progress", "Done")


class Column(BaseModel):
    """An ordered bucket of tasks within a board."""

    id: str
    title: str
    board_id: str
    tasks: list[Task] = Field(default_factory=list)

    def get_task(self, task_id: str) -> Task | None:
        """Get a task in this column by ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @staticmethod
    def insert_row(title: str, board_id: str, position: int) -> dict[str, Any]:
        """Backend row for a new column at the given position."""
        return {"title": title, "board_id": board_id, "position": position}

    @classmethod
    def from_row(cls, row: dict[str, Any], tasks: list[Task] | None = None) -> Column:
        """Create Column from a backend row."""
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            board_id=row["board_id"],
            tasks=tasks or [],
        )


class Board(BaseModel):
    """Top-level container of columns; the unit of sharing."""

    id: str
    title: str
    columns: list[Column] = Field(default_factory=list)
    is_public: bool = False

    def get_column(self, column_id: str) -> Column | None:
        """Get a column by ID."""
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def iter_tasks(self) -> Iterator[tuple[Column, Task]]:
        """Yield (column, task) pairs in display order."""
        for column in self.columns:
            for task in column.tasks:
                yield column, task

    def find_task(self, task_id: str) -> tuple[Column, Task] | None:
        """Locate a task and its containing column."""
        for column, task in self.iter_tasks():
            if task.id == task_id:
                return column, task
        return None

    @property
    def task_count(self) -> int:
        """Total number of tasks across columns."""
        return sum(len(column.tasks) for column in self.columns)

    @staticmethod
    def insert_row(title: str, is_public: bool = False) -> dict[str, Any]:
        """Backend row for a new board (columns are stored separately)."""
        return {"title": title, "is_public": is_public}

    @classmethod
    def from_row(cls, row: dict[str, Any], columns: list[Column] | None = None) -> Board:
        """Create Board from a backend row."""
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            columns=columns or [],
            is_public=bool(row.get("is_public", False)),
        )

"""Task domain model."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .comment import Comment


class Priority(str, Enum):
    """Priority levels for tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip tags, drop blanks and duplicates, keep first-seen order."""
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


class Task(BaseModel):
    """A unit of work inside a column."""

    id: str
    title: str
    description: str = ""
    column_id: str  # always the id of the containing column
    board_id: str
    priority: Priority = Priority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)  # newest first

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Keep the tag set free of blank and duplicate entries."""
        return normalize_tags(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: str | None) -> str:
        """Backend rows may carry NULL descriptions."""
        return v or ""

    @staticmethod
    def insert_row(
        title: str,
        column_id: str,
        board_id: str,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        """Backend row for a new task; the server assigns id and created_at."""
        return {
            "title": title,
            "description": description,
            "column_id": column_id,
            "board_id": board_id,
            "priority": Priority(priority).value,
            "tags": normalize_tags(tags or []),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any], comments: list[Comment] | None = None) -> Task:
        """Create Task from a backend row."""
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            description=row.get("description") or "",
            column_id=row["column_id"],
            board_id=row["board_id"],
            priority=row.get("priority") or Priority.MEDIUM,
            tags=row.get("tags") or [],
            comments=comments or [],
        )


class TaskUpdate(BaseModel):
    """Partial task update.

    Only fields that were explicitly set are persisted and merged, so
    ``TaskUpdate(title="x")`` leaves description, priority, tags and
    column untouched.
    """

    title: str | None = None
    description: str | None = None
    priority: Priority | None = None
    tags: list[str] | None = None
    column_id: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize tags the same way Task does."""
        if v is None:
            return None
        return normalize_tags(v)

    def changes(self) -> dict[str, Any]:
        """Explicitly set, non-null fields."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }

    def to_row(self) -> dict[str, Any]:
        """Wire representation of the changed fields."""
        row = self.changes()
        if "priority" in row:
            row["priority"] = Priority(row["priority"]).value
        return row

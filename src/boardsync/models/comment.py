"""Comment domain model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from ..utils.datetime import ensure_utc, from_iso, to_iso


class CommentUser(BaseModel):
    """Author shown next to a comment."""

    name: str
    avatar: str | None = None


class Comment(BaseModel):
    """A single comment on a task."""

    id: str
    text: str
    task_id: str
    created_at: datetime
    user: CommentUser

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: str | datetime) -> datetime:
        """Accept ISO strings as returned by the backend."""
        if isinstance(v, str):
            return from_iso(v)
        return ensure_utc(v)

    @staticmethod
    def insert_row(
        text: str, task_id: str, user: CommentUser, created_at: datetime
    ) -> dict[str, Any]:
        """Backend row for a new comment, flattening the author."""
        return {
            "text": text,
            "task_id": task_id,
            "created_at": to_iso(created_at),
            "user_name": user.name,
            "user_avatar": user.avatar,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Comment:
        """Create Comment from a backend row."""
        return cls(
            id=row["id"],
            text=row.get("text") or "",
            task_id=row["task_id"],
            created_at=row["created_at"],
            user=CommentUser(
                name=row.get("user_name") or "",
                avatar=row.get("user_avatar") or None,
            ),
        )

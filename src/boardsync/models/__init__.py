"""Data models."""

from .board import DEFAULT_COLUMN_TITLES, Board, Column
from .comment import Comment, CommentUser
from .task import Priority, Task, TaskUpdate, normalize_tags

__all__ = [
    "DEFAULT_COLUMN_TITLES",
    "Board",
    "Column",
    "Comment",
    "CommentUser",
    "Priority",
    "Task",
    "TaskUpdate",
    "normalize_tags",
]

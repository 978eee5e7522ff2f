"""Protocol for the persistence collaborator behind the board store."""

from typing import Any, Protocol

BOARDS = "boards"
COLUMNS = "columns"
TASKS = "tasks"
COMMENTS = "comments"

TABLES = (BOARDS, COLUMNS, TASKS, COMMENTS)

Row = dict[str, Any]


class DataServiceProtocol(Protocol):
    """Async CRUD contract for board storage backends.

    Rows use the backend's snake_case field names (``board_id``,
    ``column_id``, ``task_id``, ``position``, ``is_public``,
    ``user_name``, ``created_at``). Every method raises
    ``DataServiceError`` (or a subclass) when the call is rejected
    or times out.
    """

    async def list_boards(self) -> list[Row]:
        """List all boards in backend order."""
        ...

    async def list_columns(self, board_id: str) -> list[Row]:
        """List a board's columns ordered by ``position`` ascending."""
        ...

    async def list_tasks(self, column_id: str) -> list[Row]:
        """List the tasks of a column."""
        ...

    async def list_comments(self, task_id: str) -> list[Row]:
        """List a task's comments ordered by ``created_at`` descending."""
        ...

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row.

        Returns:
            The persisted row, including the server-assigned ``id``
            (and ``created_at`` where the table has one).
        """
        ...

    async def update(self, table: str, row_id: str, fields: Row) -> Row:
        """Update the given fields of a row and return the persisted row.

        Raises:
            DataServiceNotFoundError: If no row has ``row_id``.
        """
        ...

    async def delete(self, table: str, row_id: str) -> None:
        """Delete a row; children are removed by cascade."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...

"""Shared fixtures for board store tests."""

import asyncio
from collections import Counter

import pytest

from boardsync.config import Settings
from boardsync.repositories import TASKS, InMemoryDataService
from boardsync.services import BoardStore, NotificationCenter

SEED_BOARDS = [
    {
        "id": "board-1",
        "title": "Project Alpha",
        "columns": [
            {
                "id": "col-1",
                "title": "To Do",
                "tasks": [
                    {
                        "id": "task-1",
                        "title": "Research competitors",
                        "description": "Comparison matrix",
                        "priority": "high",
                        "tags": ["research"],
                        "comments": [
                            {
                                "id": "comment-1",
                                "text": "Focus on pricing",
                                "created_at": "2023-04-10T12:00:00Z",
                                "user": {"name": "Jane Smith"},
                            },
                            {
                                "id": "comment-2",
                                "text": "And features",
                                "created_at": "2023-04-11T10:30:00Z",
                                "user": {"name": "John Doe", "avatar": "jd.png"},
                            },
                        ],
                    },
                    {"id": "task-2", "title": "Create wireframes"},
                ],
            },
            {"id": "col-2", "title": "In Progress"},
            {"id": "col-3", "title": "Done"},
        ],
    },
    {
        "id": "board-2",
        "title": "Marketing",
        "columns": [
            {
                "id": "col-4",
                "title": "Ideas",
                "tasks": [{"id": "task-3", "title": "Launch post", "tags": ["blog"]}],
            },
        ],
    },
]


@pytest.fixture
def run():
    """Run coroutines on a single event loop for the whole test."""
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(origin="https://app.example", user_name="Tester", data_url=None)


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def data_service() -> InMemoryDataService:
    """Empty in-memory backend."""
    return InMemoryDataService()


@pytest.fixture
def store(data_service, notifier, settings) -> BoardStore:
    """Store over an empty backend, not loaded yet."""
    return BoardStore(data_service, notifier, settings)


@pytest.fixture
def seeded_service() -> InMemoryDataService:
    """Backend holding two boards (see SEED_BOARDS)."""
    service = InMemoryDataService()
    service.seed(SEED_BOARDS)
    return service


@pytest.fixture
def loaded_store(run, seeded_service, notifier, settings) -> BoardStore:
    """Store loaded from the seeded backend; board-1 is active."""
    store = BoardStore(seeded_service, notifier, settings)
    run(store.load())
    notifier.clear()
    seeded_service.calls.clear()
    return store


def _check_invariants(store: BoardStore) -> None:
    ids: dict[str, list[str]] = {"board": [], "column": [], "task": [], "comment": []}
    for board in store.boards:
        ids["board"].append(board.id)
        for column in board.columns:
            ids["column"].append(column.id)
            assert column.board_id == board.id
            for task in column.tasks:
                ids["task"].append(task.id)
                assert task.column_id == column.id
                assert task.board_id == board.id
                assert len(task.tags) == len(set(task.tags))
                assert "" not in task.tags
                for comment in task.comments:
                    ids["comment"].append(comment.id)
                    assert comment.task_id == task.id

    for kind, values in ids.items():
        duplicates = [v for v, n in Counter(values).items() if n > 1]
        assert not duplicates, f"duplicate {kind} ids: {duplicates}"

    if store.active_board_id is None:
        assert store.active_board is None
    else:
        assert store.active_board is store.get_board(store.active_board_id)


@pytest.fixture
def check_invariants():
    """Assert id uniqueness, containment and active-board coherence."""
    return _check_invariants


class GatedService(InMemoryDataService):
    """In-memory backend that can pause one call until the test releases it.

    ``gate("insert", COLUMNS)`` pauses the next column insert after the row
    is stored; ``gate("list", TASKS)`` pauses the next task listing before
    it reads. Each gate fires once.
    """

    def __init__(self) -> None:
        super().__init__()
        self._gates: dict[tuple[str, str], tuple[asyncio.Event, asyncio.Event]] = {}

    def gate(self, operation: str, table: str) -> tuple[asyncio.Event, asyncio.Event]:
        """Return (reached, release) events for the next matching call."""
        reached, release = asyncio.Event(), asyncio.Event()
        self._gates[(operation, table)] = (reached, release)
        return reached, release

    async def _pause(self, operation: str, table: str) -> None:
        gate = self._gates.pop((operation, table), None)
        if gate is not None:
            reached, release = gate
            reached.set()
            await release.wait()

    async def insert(self, table, row):
        stored = await super().insert(table, row)
        await self._pause("insert", table)
        return stored

    async def list_tasks(self, column_id):
        await self._pause("list", TASKS)
        return await super().list_tasks(column_id)


async def _settle(turns: int = 50) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def gated_service() -> GatedService:
    """Empty backend whose calls can be paused (see GatedService)."""
    return GatedService()


@pytest.fixture
def settle():
    """Coroutine letting every runnable task advance until it blocks."""
    return _settle


@pytest.fixture
def gated_seeded_service(gated_service) -> GatedService:
    """Gated backend holding SEED_BOARDS."""
    gated_service.seed(SEED_BOARDS)
    return gated_service

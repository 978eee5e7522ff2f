"""Tests for the REST data service."""

import json

import httpx
import pytest

from boardsync.repositories import (
    BOARDS,
    COLUMNS,
    TASKS,
    DataServiceAuthError,
    DataServiceError,
    DataServiceNotFoundError,
    RestDataService,
)


class Backend:
    """Records requests and replies with canned responses."""

    def __init__(self, response: httpx.Response | Exception | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.response = response or httpx.Response(200, json=[])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def make_service(run):
    """Build services against a mock backend and close them afterwards."""
    services: list[RestDataService] = []

    def factory(backend: Backend) -> RestDataService:
        service = RestDataService(
            "https://db.example/",
            "secret-key",
            transport=httpx.MockTransport(backend),
        )
        services.append(service)
        return service

    yield factory
    for service in services:
        run(service.close())


class TestRestInit:
    """Tests for client construction."""

    def test_base_url_trailing_slash_stripped(self, make_service):
        service = make_service(Backend())
        assert service.base_url == "https://db.example"
        assert service._rest_url == "https://db.example/rest/v1"

    def test_auth_headers_sent(self, run, make_service):
        """apikey and bearer headers go out with every request."""
        backend = Backend()
        run(make_service(backend).list_boards())

        assert backend.last.headers["apikey"] == "secret-key"
        assert backend.last.headers["Authorization"] == "Bearer secret-key"


class TestRestReads:
    """Tests for bulk reads."""

    def test_list_columns_filters_and_orders(self, run, make_service):
        backend = Backend(httpx.Response(200, json=[{"id": "c1", "position": 0}]))
        rows = run(make_service(backend).list_columns("b1"))

        assert rows == [{"id": "c1", "position": 0}]
        request = backend.last
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/columns"
        assert request.url.params["board_id"] == "eq.b1"
        assert request.url.params["order"] == "position.asc"
        assert request.url.params["select"] == "*"

    def test_list_comments_newest_first(self, run, make_service):
        backend = Backend()
        run(make_service(backend).list_comments("t1"))
        assert backend.last.url.params["task_id"] == "eq.t1"
        assert backend.last.url.params["order"] == "created_at.desc"


class TestRestWrites:
    """Tests for inserts, updates and deletes."""

    def test_insert_returns_first_row(self, run, make_service):
        backend = Backend(httpx.Response(201, json=[{"id": "b1", "title": "Board"}]))
        row = run(make_service(backend).insert(BOARDS, {"title": "Board"}))

        assert row == {"id": "b1", "title": "Board"}
        assert backend.last.method == "POST"
        assert backend.last.headers["Prefer"] == "return=representation"
        assert json.loads(backend.last.content) == {"title": "Board"}

    def test_insert_without_representation_fails(self, run, make_service):
        backend = Backend(httpx.Response(201, json=[]))
        with pytest.raises(DataServiceError):
            run(make_service(backend).insert(BOARDS, {"title": "Board"}))

    def test_update_patches_by_id(self, run, make_service):
        backend = Backend(httpx.Response(200, json=[{"id": "t1", "title": "New"}]))
        row = run(make_service(backend).update(TASKS, "t1", {"title": "New"}))

        assert row["title"] == "New"
        assert backend.last.method == "PATCH"
        assert backend.last.url.params["id"] == "eq.t1"
        assert json.loads(backend.last.content) == {"title": "New"}

    def test_update_no_rows_is_not_found(self, run, make_service):
        """A PATCH that matched nothing means the row does not exist."""
        backend = Backend(httpx.Response(200, json=[]))
        with pytest.raises(DataServiceNotFoundError):
            run(make_service(backend).update(BOARDS, "missing", {"title": "x"}))

    def test_delete_no_content(self, run, make_service):
        backend = Backend(httpx.Response(204))
        assert run(make_service(backend).delete(COLUMNS, "c1")) is None
        assert backend.last.method == "DELETE"
        assert backend.last.url.params["id"] == "eq.c1"

    def test_unknown_table_rejected(self, run, make_service):
        with pytest.raises(ValueError):
            run(make_service(Backend()).insert("users", {}))


class TestRestErrors:
    """Tests for error mapping."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, run, make_service, status):
        backend = Backend(httpx.Response(status, text="denied"))
        with pytest.raises(DataServiceAuthError):
            run(make_service(backend).list_boards())

    def test_404_not_found(self, run, make_service):
        backend = Backend(httpx.Response(404))
        with pytest.raises(DataServiceNotFoundError):
            run(make_service(backend).list_boards())

    def test_server_error(self, run, make_service):
        backend = Backend(httpx.Response(500, text="boom"))
        with pytest.raises(DataServiceError, match="HTTP 500"):
            run(make_service(backend).list_boards())

    def test_transport_error(self, run, make_service):
        backend = Backend(httpx.ConnectError("connection refused"))
        with pytest.raises(DataServiceError, match="Request failed"):
            run(make_service(backend).list_boards())

    def test_timeout(self, run, make_service):
        backend = Backend(httpx.ReadTimeout("too slow"))
        with pytest.raises(DataServiceError, match="timed out"):
            run(make_service(backend).list_boards())

    def test_invalid_json(self, run, make_service):
        backend = Backend(httpx.Response(200, content=b"not json"))
        with pytest.raises(DataServiceError, match="Invalid JSON"):
            run(make_service(backend).list_boards())

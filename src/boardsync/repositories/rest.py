"""REST data service for the hosted backend."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .errors import DataServiceAuthError, DataServiceError, DataServiceNotFoundError
from .protocol import BOARDS, COLUMNS, COMMENTS, TABLES, TASKS, Row

logger = logging.getLogger(__name__)


class RestDataService:
    """Data service backed by a PostgREST-style HTTP API.

    Provides a thin async wrapper around the backend's table endpoints with:
    - API key authentication (``apikey`` header plus bearer token)
    - ``eq``/``order`` query filters for the bulk reads
    - Representation-returning writes so inserts yield server ids
    - Error mapping onto the ``DataServiceError`` hierarchy
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the data service.

        Args:
            base_url: Backend base URL, e.g. "https://xyz.supabase.co"
            api_key: Key sent as ``apikey`` and ``Authorization: Bearer``
            timeout: Request timeout in seconds
            transport: Optional transport override
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._rest_url = f"{self.base_url}/rest/v1"
        self._client = httpx.AsyncClient(
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> RestDataService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # --- Bulk reads ---

    async def list_boards(self) -> list[Row]:
        return await self._select(BOARDS, {"order": "created_at.asc"})

    async def list_columns(self, board_id: str) -> list[Row]:
        return await self._select(
            COLUMNS, {"board_id": f"eq.{board_id}", "order": "position.asc"}
        )

    async def list_tasks(self, column_id: str) -> list[Row]:
        return await self._select(
            TASKS, {"column_id": f"eq.{column_id}", "order": "created_at.asc"}
        )

    async def list_comments(self, task_id: str) -> list[Row]:
        return await self._select(
            COMMENTS, {"task_id": f"eq.{task_id}", "order": "created_at.desc"}
        )

    # --- Writes ---

    async def insert(self, table: str, row: Row) -> Row:
        rows = await self._request(
            "POST",
            table,
            json=row,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise DataServiceError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, row_id: str, fields: Row) -> Row:
        rows = await self._request(
            "PATCH",
            table,
            params={"id": f"eq.{row_id}"},
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise DataServiceNotFoundError(f"{table} row not found: {row_id}")
        return rows[0]

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", table, params={"id": f"eq.{row_id}"})

    # --- Internals ---

    async def _select(self, table: str, params: dict[str, str]) -> list[Row]:
        return await self._request("GET", table, params={"select": "*", **params})

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Row | None = None,
        headers: dict[str, str] | None = None,
    ) -> list[Row]:
        """Send a request to a table endpoint.

        Returns:
            Decoded JSON rows (empty list for bodiless responses)

        Raises:
            DataServiceAuthError: 401/403 responses
            DataServiceNotFoundError: 404 responses
            DataServiceError: Transport failures, timeouts, other errors
        """
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")

        url = f"{self._rest_url}/{table}"
        logger.debug("%s %s params=%s", method, table, params)

        start_time = time.monotonic()
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s %s timed out after %.0fms", method, table, elapsed_ms)
            raise DataServiceError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s %s failed after %.0fms: %s", method, table, elapsed_ms, e)
            raise DataServiceError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        status = response.status_code

        if status in (401, 403):
            logger.error("%s %s: %d Unauthorized (%.0fms)", method, table, status, elapsed_ms)
            raise DataServiceAuthError(
                "Authentication failed. Check BOARDSYNC_API_KEY and row-level policies."
            )
        if status == 404:
            logger.error("%s %s: 404 Not Found (%.0fms)", method, table, elapsed_ms)
            raise DataServiceNotFoundError(f"Resource not found: {table}")
        if status >= 400:
            logger.error("%s %s: HTTP %d (%.0fms)", method, table, status, elapsed_ms)
            raise DataServiceError(f"HTTP {status}: {response.text}")

        logger.info("%s %s: %d (%.0fms)", method, table, status, elapsed_ms)

        if not response.content:
            return []
        try:
            result = response.json()
        except ValueError as e:
            logger.error("%s %s: Invalid JSON response", method, table)
            raise DataServiceError(f"Invalid JSON response: {e}") from e

        if isinstance(result, dict):
            return [result]
        return result

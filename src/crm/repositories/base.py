# src/crm/repositories/base.py
"""
Base Repository - Shared plumbing for the Supabase adapters.

Every concrete repository wraps one table. Queries are built with the
PostgREST query builder (parameterized, never string-built SQL) and executed
through `_read()` / `_write()`, which translate transport and API failures
into QueryError / WriteError.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
from postgrest.exceptions import APIError

from ..errors import QueryError, WriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupabaseRepository:
    """Base class for repositories backed by a single Supabase table."""

    table_name: str = ""

    def __init__(self, client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (scoped to one job invocation)
        """
        self._client = client

    def _table(self):
        return self._client.table(self.table_name)

    def _read(self, query) -> List[Dict[str, Any]]:
        """Execute a read query and return its rows."""
        try:
            result = query.execute()
        except APIError as e:
            raise QueryError(
                f"Query on {self.table_name} failed: {e.message}",
                table=self.table_name,
                code=str(e.code or ""),
            ) from e
        except httpx.HTTPError as e:
            raise QueryError(
                f"Query on {self.table_name} failed: {e}", table=self.table_name
            ) from e
        return result.data or []

    def _write(self, query) -> List[Dict[str, Any]]:
        """Execute an insert/update and return the affected rows."""
        try:
            result = query.execute()
        except APIError as e:
            raise WriteError(
                f"Write to {self.table_name} failed: {e.message}",
                table=self.table_name,
                code=str(e.code or ""),
            ) from e
        except httpx.HTTPError as e:
            raise WriteError(
                f"Write to {self.table_name} failed: {e}", table=self.table_name
            ) from e
        return result.data or []

    @staticmethod
    def _parse_rows(rows: List[Dict[str, Any]], parser: Callable[[Dict[str, Any]], T]) -> List[T]:
        return [parser(row) for row in rows]

    @staticmethod
    def _first(rows: List[T]) -> Optional[T]:
        return rows[0] if rows else None

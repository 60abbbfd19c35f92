# tests/conftest.py
"""
Pytest configuration and fixtures for the pipeline job tests.

Provides:
- In-memory Supabase mock client (chainable query builder, error injection,
  optional unique constraints)
- A session factory that hands the mock to a job in place of a real client
- FastAPI test client

Note: Tests never reach a real Supabase project.
"""

import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

# Set test environment before imports
os.environ["CRM_ENV"] = "test"
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"

from tests.fixtures.data import NOW


# ============== Supabase Mock ==============

def _comparable(value: Any) -> Any:
    """Parse ISO dates/timestamps so range filters compare chronologically."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


class MockSupabaseResponse:
    """Mock response from Supabase operations."""
    def __init__(self, data: List[Dict] = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseTable:
    """Mock Supabase table with chainable methods. Work happens in execute()."""

    def __init__(self, table_name: str, client: "MockSupabaseClient"):
        self.table_name = table_name
        self._client = client
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._limit: Optional[int] = None

    # --- operations ---

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._op = "select"
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = [data] if isinstance(data, dict) else list(data)
        return self

    def update(self, data: Dict):
        self._op = "update"
        self._payload = data
        return self

    # --- filters ---

    def eq(self, column: str, value: Any):
        self._filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value: Any):
        self._filters.append(("gte", column, value))
        return self

    def lte(self, column: str, value: Any):
        self._filters.append(("lte", column, value))
        return self

    def lt(self, column: str, value: Any):
        self._filters.append(("lt", column, value))
        return self

    def is_(self, column: str, value: Any):
        self._filters.append(("is", column, value))
        return self

    def in_(self, column: str, values: List[Any]):
        self._filters.append(("in", column, list(values)))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def order(self, column: str, desc: bool = False):
        return self

    # --- execution ---

    def _matches(self, row: Dict[str, Any]) -> bool:
        for op, column, value in self._filters:
            actual = row.get(column)
            if op == "eq" and actual != value:
                return False
            if op == "is" and not (value in ("null", None) and actual is None):
                return False
            if op == "in" and actual not in value:
                return False
            if op in ("gte", "lte", "lt"):
                if actual is None:
                    return False
                left, right = _comparable(actual), _comparable(value)
                if op == "gte" and not left >= right:
                    return False
                if op == "lte" and not left <= right:
                    return False
                if op == "lt" and not left < right:
                    return False
        return True

    def execute(self) -> MockSupabaseResponse:
        """Execute the query and return results."""
        self._client.calls.append((self.table_name, self._op, list(self._filters)))
        self._client._maybe_fail(self.table_name, self._op, self._filters, self._payload)

        rows = self._client._data_store.setdefault(self.table_name, [])

        if self._op == "insert":
            inserted = []
            for item in self._payload:
                record = dict(item)
                record.setdefault("id", str(uuid.uuid4()))
                record.setdefault("created_at", self._client.now.isoformat())
                self._client._check_unique(self.table_name, record)
                rows.append(record)
                inserted.append(dict(record))
            return MockSupabaseResponse(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._limit is not None:
            matched = matched[:self._limit]
        return MockSupabaseResponse(data=[dict(row) for row in matched])


class MockSupabaseClient:
    """Mock Supabase client for testing."""

    def __init__(self):
        self._data_store: Dict[str, List[Dict]] = {}
        self._failures: List[Tuple[str, str, Dict[str, Any], str]] = []
        self._unique: Dict[str, Tuple[str, ...]] = {}
        self.calls: List[Tuple[str, str, list]] = []
        self.now = NOW

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(name, self)

    def seed_data(self, table_name: str, data: List[Dict]):
        """Seed test data into a table."""
        self._data_store[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> List[Dict]:
        return self._data_store.get(table_name, [])

    def fail_when(self, table_name: str, op: str = "select", code: str = "XX000", **eq_filters):
        """Make matching queries raise APIError (eq filters must all be present)."""
        self._failures.append((table_name, op, eq_filters, code))

    def add_unique_constraint(self, table_name: str, columns: Tuple[str, ...]):
        """Reject inserts that duplicate `columns` (NULLs compare equal)."""
        self._unique[table_name] = columns

    def _maybe_fail(self, table_name: str, op: str, filters, payload=None):
        eqs = {column: value for kind, column, value in filters if kind == "eq"}
        # inserts carry no filters; match against the rows being written
        candidates = payload if op == "insert" else [eqs]
        for fail_table, fail_op, fail_filters, code in self._failures:
            if fail_table != table_name or fail_op != op:
                continue
            if any(all(c.get(k) == v for k, v in fail_filters.items()) for c in candidates):
                raise APIError({
                    "message": f"simulated failure on {table_name}",
                    "code": code,
                    "hint": None,
                    "details": None,
                })

    def _check_unique(self, table_name: str, record: Dict[str, Any]):
        columns = self._unique.get(table_name)
        if not columns:
            return
        key = tuple(record.get(c) for c in columns)
        for row in self._data_store.get(table_name, []):
            if tuple(row.get(c) for c in columns) == key:
                raise APIError({
                    "message": "duplicate key value violates unique constraint",
                    "code": "23505",
                    "hint": None,
                    "details": None,
                })

    def clear(self):
        """Clear all test data."""
        self._data_store.clear()
        self._failures.clear()
        self.calls.clear()


def make_session_factory(client):
    """Session factory yielding a fixed client (stands in for supabase_session)."""
    @contextmanager
    def _session():
        yield client
    return _session


@pytest.fixture(scope="function")
def mock_supabase() -> MockSupabaseClient:
    """
    Mock Supabase client for testing.

    Stores data in memory and supports select, insert, update with
    eq / gte / lte / lt / is_ / in_ filters.
    """
    return MockSupabaseClient()


@pytest.fixture(scope="function")
def session_factory(mock_supabase):
    return make_session_factory(mock_supabase)


@pytest.fixture(scope="function")
def fixed_clock():
    return lambda: NOW


# ============== FastAPI Client Fixtures ==============

@pytest.fixture(scope="function")
def client():
    """FastAPI test client for the job routes."""
    from src.crm.main import app

    with TestClient(app) as test_client:
        yield test_client

"""
Pytest configuration and shared fixtures.

FakeSupabaseClient mimics the small part of the supabase-py query builder
the service uses (select / eq / in_ / is_ / gte / order / limit / range /
single / upsert / rpc) over in-memory tables, so sync and search run
end-to-end without a database. Like PostgREST, a select never returns more
than `max_rows` rows.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

import pytest


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


def _sort_key(value: Any) -> tuple:
    return (value is None, 0 if value is None else value)


class FakeQuery:
    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self.client = client
        self.table_name = table
        self.op = "select"
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: List[tuple] = []
        self.row_limit: Optional[int] = None
        self.row_offset = 0
        self.want_single = False
        self.payload: List[Dict[str, Any]] = []
        self.on_conflict: Optional[str] = None

    # -- builder ---------------------------------------------------------
    def select(self, columns: str = "*") -> "FakeQuery":
        self.op = "select"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = set(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def is_(self, column: str, value: Any) -> "FakeQuery":
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.row_limit = size
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.row_offset = start
        self.row_limit = end - start + 1
        return self

    def single(self) -> "FakeQuery":
        self.want_single = True
        return self

    def upsert(self, rows, *, on_conflict: str = "", ignore_duplicates: bool = False, **_: Any) -> "FakeQuery":
        self.op = "upsert"
        self.payload = rows if isinstance(rows, list) else [rows]
        self.on_conflict = on_conflict
        return self

    # -- execution -------------------------------------------------------
    def execute(self) -> FakeResponse:
        self.client.calls.append((self.table_name, self.op))
        failure = self.client.failures.get((self.table_name, self.op))
        if failure is not None:
            if callable(failure) and not isinstance(failure, BaseException):
                failure = failure(self)
            if failure is not None:
                raise failure

        if self.op == "upsert":
            return FakeResponse(self.client._upsert(self.table_name, self.payload, self.on_conflict))

        rows = [r for r in self.client.tables.get(self.table_name, []) if all(f(r) for f in self.filters)]
        # stable sorts, least significant key first
        for column, desc in reversed(self.order_by):
            rows = sorted(rows, key=lambda r, c=column: _sort_key(r.get(c)), reverse=desc)
        rows = rows[self.row_offset :]
        limit = self.client.max_rows if self.row_limit is None else min(self.row_limit, self.client.max_rows)
        rows = rows[:limit]
        rows = copy.deepcopy(rows)

        if self.want_single:
            if len(rows) != 1:
                raise RuntimeError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(rows[0])
        return FakeResponse(rows)


class FakeRpc:
    def __init__(self, client: "FakeSupabaseClient", name: str, params: Dict[str, Any]) -> None:
        self.client = client
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.client.rpc_calls.append((self.name, self.params))
        failure = self.client.failures.get(("rpc", self.name))
        if failure is not None:
            raise failure
        return FakeResponse(copy.deepcopy(self.client.rpc_results.get(self.name, [])))


class FakeSupabaseClient:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = tables or {}
        # (table, op) -> exception, or callable(query) -> exception | None
        self.failures: Dict[tuple, Any] = {}
        self.calls: List[tuple] = []
        self.rpc_calls: List[tuple] = []
        self.rpc_results: Dict[str, List[Dict[str, Any]]] = {}
        self.upserts: List[List[Dict[str, Any]]] = []
        self.max_rows = 1000

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def _upsert(self, table: str, rows: List[Dict[str, Any]], on_conflict: str) -> List[Dict[str, Any]]:
        self.upserts.append(copy.deepcopy(rows))
        stored = self.tables.setdefault(table, [])
        for row in rows:
            stored[:] = [r for r in stored if not on_conflict or r.get(on_conflict) != row.get(on_conflict)]
            stored.append(copy.deepcopy(row))
        return copy.deepcopy(rows)


def make_recipe(idx: int, loves: int, *, user_id: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    row = {
        "id": f"recipe-{idx:04d}",
        "title": f"Recipe {idx}",
        "ingredients": "beras, telur, bawang",
        "steps": "goreng semua bahan",
        "loves_count": loves,
        "user_id": user_id,
    }
    row.update(fields)
    return row


@pytest.fixture
def fake_client() -> FakeSupabaseClient:
    return FakeSupabaseClient(
        {
            "dataset_recipes": [],
            "recipe_embeddings": [],
            "feature_flags": [{"name": "dataset", "enabled": True}],
        }
    )


@pytest.fixture
def pauses() -> List[float]:
    """Collects requested inter-batch pauses instead of sleeping."""
    return []


@pytest.fixture
def recipe_row() -> Callable[..., Dict[str, Any]]:
    return make_recipe

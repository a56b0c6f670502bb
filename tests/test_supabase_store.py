from types import SimpleNamespace

import httpx
import pytest
from postgrest import APIError

from storage import supabase_store
from storage.supabase_store import SupabaseStore


class FakeTable:
    def __init__(self, insert_failures=()):
        self.rows = []
        self.insert_calls = 0
        self.insert_failures = list(insert_failures)

    def run(self, query):
        if query.action == "insert":
            self.insert_calls += 1
            payload = dict(query.payload)
            if any(row["id"] == payload["id"] for row in self.rows):
                raise APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})
            failure, committed = self.insert_failures.pop(0) if self.insert_failures else (None, True)
            if committed:
                self.rows.append(payload)
            if failure is not None:
                raise failure
            return SimpleNamespace(data=[payload])
        matches = [row for row in self.rows if all(row.get(k) == v for k, v in query.filters.items())]
        return SimpleNamespace(data=matches[0] if matches else None)


class FakeQuery:
    def __init__(self, table):
        self.table = table
        self.action = None
        self.payload = None
        self.filters = {}

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def select(self, *_):
        self.action = "select"
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def maybe_single(self):
        return self

    def execute(self):
        return self.table.run(self)


class FakeClient:
    def __init__(self, properties):
        self.tables = {"properties": properties}

    def table(self, name):
        return FakeQuery(self.tables[name])


def _store(monkeypatch, properties):
    monkeypatch.setattr(supabase_store, "create_client", lambda url, key: FakeClient(properties))
    store = SupabaseStore("https://demo.supabase.co", "service-role")
    store._retry_backoff_seconds = 0
    return store


RECORD = {
    "owner_id": 1001,
    "name": "Sunset Villa",
    "location": "Lekki",
    "price": 45000,
    "tokens": 30,
    "property_type": "House",
    "description": "3 bed duplex",
    "images": ("https://img/1",),
}


def test_create_property_assigns_id(monkeypatch):
    table = FakeTable()
    prop = _store(monkeypatch, table).create_property(RECORD)
    assert prop["id"]
    assert prop["owner_id"] == "1001"
    assert prop["status"] == "pending"
    assert prop["images"] == ["https://img/1"]


def test_replayed_insert_does_not_duplicate(monkeypatch):
    # The first insert lands but the connection drops before the response arrives.
    table = FakeTable(insert_failures=[(httpx.RemoteProtocolError("Server disconnected"), True)])
    prop = _store(monkeypatch, table).create_property(RECORD)
    assert table.insert_calls == 2
    assert len(table.rows) == 1
    assert prop["id"] == table.rows[0]["id"]


def test_other_api_errors_still_raise(monkeypatch):
    rejected = (APIError({"code": "23514", "message": "check violation"}), False)
    table = FakeTable(insert_failures=[rejected] * 3)
    with pytest.raises(APIError):
        _store(monkeypatch, table).create_property(RECORD)
    assert table.rows == []

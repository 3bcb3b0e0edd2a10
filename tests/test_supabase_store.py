from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from edupresence.database.supabase_store import SupabaseStore
from edupresence.errors import DuplicateKey, StoreError


class FakeAPIError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class FakeQuery:
    """Records the PostgREST builder calls and answers execute() with canned data."""

    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return call

    def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.data)


class FakeClient:
    def __init__(self, query):
        self.query = query
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return self.query


def test_ownership_filters_on_both_keys():
    query = FakeQuery(data=[{"id": "C1"}])
    store = SupabaseStore(client=FakeClient(query))

    assert store.class_owned_by("C1", "T1") is True
    assert ("eq", ("id", "C1"), {}) in query.calls
    assert ("eq", ("teacher_id", "T1"), {}) in query.calls


def test_no_rows_means_not_enrolled():
    store = SupabaseStore(client=FakeClient(FakeQuery(data=[])))

    assert store.is_enrolled("C1", "S9") is False


def test_insert_serializes_dates_and_returns_the_stored_row():
    stored = {"id": 5, "class_id": "C1", "student_id": "S1", "date": "1970-01-01", "marked": True}
    query = FakeQuery(data=[stored])
    client = FakeClient(query)
    store = SupabaseStore(client=client)

    result = store.insert_attendance({
        "class_id": "C1",
        "student_id": "S1",
        "date": date(1970, 1, 1),
        "marked": True,
        "signal_strength": None,
        "created_at": datetime(1970, 1, 1, 0, 16, 50, tzinfo=timezone.utc),
    })

    assert result == stored
    assert client.tables == ["attendance"]
    name, args, _ = query.calls[0]
    assert name == "insert"
    assert args[0]["date"] == "1970-01-01"
    assert args[0]["created_at"] == "1970-01-01T00:16:50+00:00"
    assert "signal_strength" not in args[0]


def test_unique_violation_is_a_duplicate_key():
    error = FakeAPIError("duplicate key value violates unique constraint", code="23505")
    store = SupabaseStore(client=FakeClient(FakeQuery(error=error)))

    with pytest.raises(DuplicateKey):
        store.insert_attendance({"class_id": "C1", "student_id": "S1", "date": date(1970, 1, 1)})


def test_other_failures_are_store_errors():
    store = SupabaseStore(client=FakeClient(FakeQuery(error=FakeAPIError("boom", code="08006"))))

    with pytest.raises(StoreError) as excinfo:
        store.insert_attendance({"class_id": "C1", "student_id": "S1", "date": date(1970, 1, 1)})
    assert not isinstance(excinfo.value, DuplicateKey)

    with pytest.raises(StoreError):
        store.list_student_attendance("S1")


def test_unexpected_response_shape_is_a_store_error():
    store = SupabaseStore(client=FakeClient(FakeQuery(data={"id": "C1"})))

    with pytest.raises(StoreError):
        store.get_class("C1")


def test_class_listing_joins_students_and_filters_date():
    query = FakeQuery(data=[])
    store = SupabaseStore(client=FakeClient(query))

    store.list_class_attendance("C1", date(2024, 3, 1))

    names = [name for name, _, _ in query.calls]
    assert "student:users(id, name, enrollment_no)" in query.calls[0][1][0]
    assert ("order", ("date",), {"desc": True}) in query.calls
    assert ("eq", ("date", "2024-03-01"), {}) in query.calls
    assert names.count("eq") == 2


def test_credentials_are_required():
    with pytest.raises(RuntimeError):
        SupabaseStore(None, None)

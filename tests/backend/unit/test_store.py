import json
from datetime import datetime, timezone

from decksync.backend.state import build_initial_room
from decksync.backend.store import InMemoryRoomStore, PostgresRoomStore, create_store


def test_create_store_returns_postgres_store_when_database_url_present() -> None:
    store = create_store(database_url="postgresql://local")

    assert isinstance(store, PostgresRoomStore)


def test_create_store_returns_in_memory_store_when_database_url_missing() -> None:
    store = create_store(database_url=None)

    assert isinstance(store, InMemoryRoomStore)


def test_in_memory_store_round_trips_and_isolates_documents() -> None:
    store = InMemoryRoomStore()
    document = build_initial_room("p_host", "Host")

    store.put_room("ABC123", document)
    document["players"]["p_host"]["name"] = "mutated after write"
    record = store.get_room("ABC123")

    assert record is not None
    assert record.document["players"]["p_host"]["name"] == "Host"
    record.document["gameStarted"] = True
    assert store.get_room("ABC123").document["gameStarted"] is False


def test_in_memory_store_replaces_whole_document() -> None:
    store = InMemoryRoomStore()
    store.put_room("ABC123", {"host": "p_a", "combat": {"p_a": {"cards": [], "revealed": False}}})

    store.put_room("ABC123", {"host": "p_a"})

    assert "combat" not in store.get_room("ABC123").document


def test_in_memory_store_delete_reports_existence() -> None:
    store = InMemoryRoomStore()
    store.put_room("ABC123", {"host": "p_a"})

    assert store.delete_room("ABC123") is True
    assert store.delete_room("ABC123") is False
    assert store.get_room("ABC123") is None


class _FakeCursor:
    def __init__(self, row=None, rowcount: int = 0) -> None:
        self.commands: list[tuple[str, tuple]] = []
        self.row = row
        self.rowcount = rowcount

    def execute(self, sql: str, params: tuple) -> None:
        self.commands.append((sql, params))

    def fetchone(self):
        return self.row

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _FakeConnection:
    def __init__(self, cursor: _FakeCursor) -> None:
        self.cursor_instance = cursor
        self.committed = False

    def cursor(self) -> _FakeCursor:
        return self.cursor_instance

    def commit(self) -> None:
        self.committed = True

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _PostgresStoreWithFakeConnection(PostgresRoomStore):
    def __init__(self, cursor: _FakeCursor | None = None) -> None:
        super().__init__(database_url="postgresql://local")
        self.fake_connection = _FakeConnection(cursor or _FakeCursor())

    def _connect(self) -> _FakeConnection:
        return self.fake_connection


def test_postgres_put_room_upserts_json_document() -> None:
    store = _PostgresStoreWithFakeConnection()
    document = build_initial_room("p_host", "Host")

    record = store.put_room("ABC123", document)

    commands = store.fake_connection.cursor_instance.commands
    assert store.fake_connection.committed is True
    assert len(commands) == 1
    assert "INSERT INTO room_documents" in commands[0][0]
    assert "ON CONFLICT (code)" in commands[0][0]
    assert commands[0][1][0] == "ABC123"
    assert json.loads(commands[0][1][1]) == document
    assert record.document == document


def test_postgres_get_room_decodes_row() -> None:
    updated_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store = _PostgresStoreWithFakeConnection(_FakeCursor(row=({"host": "p_a"}, updated_at)))

    record = store.get_room("ABC123")

    assert record is not None
    assert record.document == {"host": "p_a"}
    assert record.updated_at == updated_at.isoformat()
    assert "FROM room_documents" in store.fake_connection.cursor_instance.commands[0][0]


def test_postgres_get_room_returns_none_for_missing_row() -> None:
    store = _PostgresStoreWithFakeConnection(_FakeCursor(row=None))

    assert store.get_room("ABC123") is None


def test_postgres_get_room_accepts_text_json() -> None:
    store = _PostgresStoreWithFakeConnection(_FakeCursor(row=('{"host": "p_a"}', "2024-01-01")))

    record = store.get_room("ABC123")

    assert record.document == {"host": "p_a"}
    assert record.updated_at == "2024-01-01"


def test_postgres_delete_room_uses_rowcount() -> None:
    store = _PostgresStoreWithFakeConnection(_FakeCursor(rowcount=1))

    assert store.delete_room("ABC123") is True
    assert store.fake_connection.committed is True
    assert "DELETE FROM room_documents" in store.fake_connection.cursor_instance.commands[0][0]

import pytest

from decksync.backend import migrate


class _Cursor:
    def __init__(self, rowcount: int) -> None:
        self.commands: list[tuple[str, object]] = []
        self.rowcount = rowcount

    def execute(self, sql: str, params=None) -> None:
        self.commands.append((sql, params))

    def __enter__(self) -> "_Cursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _Connection:
    def __init__(self, rowcount: int = 0) -> None:
        self.cursor_instance = _Cursor(rowcount)
        self.committed = False

    def cursor(self) -> _Cursor:
        return self.cursor_instance

    def commit(self) -> None:
        self.committed = True

    def __enter__(self) -> "_Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


def test_apply_schema_runs_bundled_sql() -> None:
    connection = _Connection()
    urls: list[str] = []

    def connect(url: str) -> _Connection:
        urls.append(url)
        return connection

    migrate.apply_schema("postgresql://local/decksync", connect=connect)

    assert urls == ["postgresql://local/decksync"]
    sql, _ = connection.cursor_instance.commands[0]
    assert "CREATE TABLE IF NOT EXISTS room_documents" in sql
    assert connection.committed is True


def test_prune_rooms_reports_deleted_count() -> None:
    connection = _Connection(rowcount=4)

    removed = migrate.prune_rooms("postgresql://local/decksync", 30, connect=lambda url: connection)

    assert removed == 4
    assert connection.cursor_instance.commands == [(migrate.PRUNE_SQL, (30,))]


def test_main_requires_database_url(monkeypatch) -> None:
    monkeypatch.delenv("DECKSYNC_DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DECKSYNC_DATABASE_URL"):
        migrate.main([])


def test_main_prunes_only_when_asked(monkeypatch) -> None:
    calls: list[tuple] = []
    monkeypatch.delenv("DECKSYNC_ROOM_RETENTION_DAYS", raising=False)
    monkeypatch.setenv("DECKSYNC_DATABASE_URL", "postgresql://local/decksync")
    monkeypatch.setattr(migrate, "apply_schema", lambda url: calls.append(("schema", url)))
    monkeypatch.setattr(migrate, "prune_rooms", lambda url, days: calls.append(("prune", days)))

    migrate.main([])
    migrate.main(["--prune-days", "7"])

    assert calls == [
        ("schema", "postgresql://local/decksync"),
        ("schema", "postgresql://local/decksync"),
        ("prune", 7),
    ]


def test_main_prunes_with_configured_retention(monkeypatch) -> None:
    pruned: list[int] = []
    monkeypatch.setenv("DECKSYNC_DATABASE_URL", "postgresql://local/decksync")
    monkeypatch.setenv("DECKSYNC_ROOM_RETENTION_DAYS", "14")
    monkeypatch.setattr(migrate, "apply_schema", lambda url: None)
    monkeypatch.setattr(migrate, "prune_rooms", lambda url, days: pruned.append(days))

    migrate.main([])

    assert pruned == [14]

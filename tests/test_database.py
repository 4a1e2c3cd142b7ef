from __future__ import annotations

import pytest
from sqlalchemy.engine import URL

from theater_app import config
from theater_app.database import ArchiveDatabase, SchemaState, build_database_url


class FakeConnection:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FlakyEngine:
    def __init__(self, failures: list[BaseException]) -> None:
        self.failures = failures
        self.attempts = 0
        self.connections: list[FakeConnection] = []

    async def connect(self) -> FakeConnection:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        conn = FakeConnection()
        self.connections.append(conn)
        return conn


def test_database_url_from_settings(monkeypatch) -> None:
    monkeypatch.setattr(config, "ARCHIVE_DATABASE_URL", None)
    monkeypatch.setattr(config, "ARCHIVE_DB_DRIVER", "mysql+aiomysql")
    monkeypatch.setattr(config, "ARCHIVE_DB_HOST", "db.internal")
    monkeypatch.setattr(config, "ARCHIVE_DB_PORT", 3307)
    monkeypatch.setattr(config, "ARCHIVE_DB_NAME", "archive")

    url = build_database_url()

    assert isinstance(url, URL)
    assert url.drivername == "mysql+aiomysql"
    assert url.host == "db.internal"
    assert url.port == 3307
    assert url.database == "archive"


def test_database_url_override(monkeypatch) -> None:
    monkeypatch.setattr(config, "ARCHIVE_DATABASE_URL", "sqlite+aiosqlite:///archive.sqlite")

    assert build_database_url() == "sqlite+aiosqlite:///archive.sqlite"


def test_schema_state_reset() -> None:
    state = SchemaState()
    state.mark_ensured("a")
    state.mark_ensured("b")

    state.reset("a")
    assert not state.is_ensured("a")
    assert state.is_ensured("b")

    state.reset()
    assert not state.is_ensured("b")


@pytest.mark.asyncio
async def test_transient_error_is_retried_once() -> None:
    engine = FlakyEngine([ConnectionResetError("reset by peer")])
    database = ArchiveDatabase(engine)

    async with database.connection() as conn:
        assert conn is engine.connections[0]

    assert engine.attempts == 2
    assert engine.connections[0].closed


@pytest.mark.asyncio
async def test_second_transient_error_is_raised() -> None:
    engine = FlakyEngine([TimeoutError(), TimeoutError()])
    database = ArchiveDatabase(engine)

    with pytest.raises(TimeoutError):
        async with database.connection():
            pass
    assert engine.attempts == 2


@pytest.mark.asyncio
async def test_permanent_error_is_not_retried() -> None:
    engine = FlakyEngine([PermissionError("denied")])
    database = ArchiveDatabase(engine)

    with pytest.raises(PermissionError):
        async with database.connection():
            pass
    assert engine.attempts == 1


@pytest.mark.asyncio
async def test_connection_is_released_when_the_body_fails() -> None:
    engine = FlakyEngine([])
    database = ArchiveDatabase(engine)

    with pytest.raises(RuntimeError):
        async with database.connection():
            raise RuntimeError("upsert failed")
    assert engine.connections[0].closed


@pytest.mark.asyncio
async def test_test_connection(database) -> None:
    assert await database.test_connection() == {
        "success": True,
        "message": "Database connection successful",
    }

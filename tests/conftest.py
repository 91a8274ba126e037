"""Shared fixtures for schemasync tests."""

import sqlite3
from collections.abc import Iterator

import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine

from schemasync.services.database import Database
from schemasync.services.factory import open_test_database


def _fts4_available() -> bool:
    connection = sqlite3.connect(":memory:")
    try:
        connection.execute("CREATE VIRTUAL TABLE probe USING fts4(body)")
    except sqlite3.OperationalError:
        return False
    finally:
        connection.close()
    return True


FTS4_AVAILABLE = _fts4_available()


@pytest.fixture
def fts4() -> None:
    """Skip tests that need the FTS4 module when the linked SQLite lacks it."""
    if not FTS4_AVAILABLE:
        pytest.skip("linked SQLite lacks FTS4")


class StatementRecorder:
    """Collects every statement sent to the driver through an engine."""

    def __init__(self, engine: Engine) -> None:
        self.statements: list[str] = []
        event.listen(engine, "before_cursor_execute", self._record)

    def _record(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)

    def clear(self) -> None:
        self.statements.clear()


@pytest.fixture
def db() -> Iterator[Database]:
    """In-memory database, closed after the test."""
    database = open_test_database()
    yield database
    database.close()


@pytest.fixture
def recorder(db: Database) -> StatementRecorder:
    return StatementRecorder(db.executor.engine)

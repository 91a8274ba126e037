"""Statement execution against a single SQLite connection.

Uses SQLAlchemy's pysqlite dialect with the connection held open in
AUTOCOMMIT mode, so explicit transaction control (``BEGIN IMMEDIATE`` ...
``COMMIT``) stays with the caller. Engine failures are logged and reported
as ``False``/``None``/``[]``; the diagnostic text is kept in ``last_error``.
"""

import sqlite3
from collections.abc import Callable, Sequence
from typing import Any

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

Params = Sequence[Any] | None


class Executor:
    """Runs SQL on one held connection and tracks pending results.

    At most one open result is kept per reference. Issuing a new query under
    a reference that still holds a result closes that result first.
    """

    def __init__(
        self,
        engine: Engine,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._engine = engine
        self._logger = logger or structlog.get_logger(__name__)
        self._connection: Connection = engine.connect()
        self._pending: dict[str, CursorResult] = {}
        self._functions: set[str] = set()
        self.last_error: str | None = None

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def connection(self) -> Connection:
        return self._connection

    def query(self, sql: str, params: Params = None, reference: str | None = None) -> CursorResult | None:
        """Execute a statement and keep its result open under ``reference``.

        Args:
            sql: Statement text using ``?`` placeholders.
            params: Positional parameter values.
            reference: Handle name for the pending result. Defaults to the SQL text.

        Returns:
            The open result, or None if the statement failed.
        """
        key = reference or sql
        self.close(key)
        try:
            result = self._connection.exec_driver_sql(sql, tuple(params or ()))
        except SQLAlchemyError as e:
            self._record_error(sql, e)
            return None
        self._pending[key] = result
        return result

    def close(self, reference: str) -> None:
        """Finalize the pending result held under ``reference``, if any."""
        result = self._pending.pop(reference, None)
        if result is not None:
            result.close()

    def execute(self, sql: str, params: Params = None) -> bool:
        result = self.query(sql, params)
        if result is None:
            return False
        self.close(sql)
        return True

    def value(self, sql: str, params: Params = None) -> Any | None:
        result = self.query(sql, params)
        if result is None:
            return None
        try:
            return result.scalar()
        except SQLAlchemyError as e:
            self._record_error(sql, e)
            return None
        finally:
            self.close(sql)

    def row(self, sql: str, params: Params = None) -> dict[str, Any] | None:
        result = self.query(sql, params)
        if result is None:
            return None
        try:
            mapping = result.mappings().first()
        except SQLAlchemyError as e:
            self._record_error(sql, e)
            return None
        finally:
            self.close(sql)
        return dict(mapping) if mapping is not None else None

    def rows(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        result = self.query(sql, params)
        if result is None:
            return []
        try:
            return [dict(mapping) for mapping in result.mappings().all()]
        except SQLAlchemyError as e:
            self._record_error(sql, e)
            return []
        finally:
            self.close(sql)

    def register_function(self, name: str, num_params: int, func: Callable[..., Any]) -> bool:
        """Register a scalar SQL function on the underlying sqlite3 connection."""
        driver = self._connection.connection.driver_connection
        try:
            driver.create_function(name, num_params, func, deterministic=True)
        except sqlite3.Error as e:
            self._record_error(f"create_function {name}", e)
            return False
        self._functions.add(name)
        self._logger.debug("function_registered", name=name, num_params=num_params)
        return True

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def dispose(self) -> None:
        """Close pending results, the connection and the engine pool."""
        for reference in list(self._pending):
            self.close(reference)
        self._connection.close()
        self._engine.dispose()

    def _record_error(self, sql: str, error: Exception) -> None:
        orig = getattr(error, "orig", None) or error
        code = getattr(orig, "sqlite_errorcode", None)
        message = str(orig)
        self.last_error = f"Code: {code} Error: {message}" if code is not None else f"Error: {message}"
        self._logger.warning("statement_failed", sql=sql, error=self.last_error)


def create_engine_from_path(db_path: str) -> Engine:
    """Create a SQLAlchemy engine for the given database path.

    Args:
        db_path: Path to SQLite database file, or ":memory:" for in-memory.

    Returns:
        Engine configured for pysqlite in AUTOCOMMIT mode.
    """
    if db_path == ":memory:":
        url = "sqlite://"
    else:
        url = f"sqlite:///{db_path}"
    return create_engine(url, isolation_level="AUTOCOMMIT")

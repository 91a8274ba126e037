"""In-memory snapshot of the engine's structural catalog.

The snapshot is owned by one database connection. Table and index
definitions are read from ``sqlite_master`` on first access and then kept
current by every write the synchronizers perform, so repeated drift checks
cost no queries. The settings category is loaded separately by the
settings store.
"""

from typing import Any

import structlog

from schemasync.services.executor import Executor

CATALOG_QUERY = "SELECT type, name, tbl_name, sql FROM sqlite_master"


class CatalogSnapshot:
    def __init__(
        self,
        executor: Executor,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._logger = logger or structlog.get_logger(__name__)
        self._tables: dict[str, str] | None = None
        self._indexes: dict[str, dict[str, str]] = {}
        self.settings: dict[str, Any] | None = None

    @property
    def loaded(self) -> bool:
        return self._tables is not None

    def tables(self) -> dict[str, str]:
        return dict(self._ensure_loaded())

    def table(self, name: str) -> str | None:
        return self._ensure_loaded().get(name)

    def set_table(self, name: str, sql: str) -> None:
        self._ensure_loaded()[name] = sql

    def forget_table(self, name: str) -> None:
        self._ensure_loaded().pop(name, None)
        self._indexes.pop(name, None)

    def indexes(self, table: str) -> dict[str, str]:
        self._ensure_loaded()
        return dict(self._indexes.get(table, {}))

    def set_indexes(self, table: str, definitions: dict[str, str]) -> None:
        self._ensure_loaded()
        if definitions:
            self._indexes[table] = dict(definitions)
        else:
            self._indexes.pop(table, None)

    def forget_indexes(self, table: str) -> None:
        self._ensure_loaded()
        self._indexes.pop(table, None)

    def invalidate(self) -> None:
        """Drop cached table and index definitions so the next access re-reads the catalog."""
        self._tables = None
        self._indexes = {}

    def _ensure_loaded(self) -> dict[str, str]:
        if self._tables is not None:
            return self._tables

        tables: dict[str, str] = {}
        indexes: dict[str, dict[str, str]] = {}
        for row in self._executor.rows(CATALOG_QUERY):
            if row["type"] == "table":
                tables[row["tbl_name"]] = row["sql"]
            elif row["type"] == "index" and row["sql"]:
                # Automatic indexes for UNIQUE/PRIMARY KEY constraints have no SQL.
                indexes.setdefault(row["tbl_name"], {})[row["name"]] = row["sql"]

        self._tables = tables
        self._indexes = indexes
        self._logger.debug("catalog_loaded", table_count=len(tables), index_count=sum(map(len, indexes.values())))
        return tables

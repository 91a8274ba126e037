"""Database facade wiring the executor, catalog snapshot and synchronizers together."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from types import TracebackType
from typing import Any

import structlog
from sqlalchemy.engine import Engine

from schemasync.models.config import DatabaseConfig
from schemasync.models.definitions import FieldsInput
from schemasync.services import recovery
from schemasync.services.catalog import CatalogSnapshot
from schemasync.services.executor import Executor, create_engine_from_path
from schemasync.services.fts import FullTextEngine
from schemasync.services.indexes import IndexSynchronizer
from schemasync.services.migrator import Migrator
from schemasync.services.schema import SchemaSynchronizer
from schemasync.services.settings import SettingsStore

MEMORY = ":memory:"


class Database:
    """One open SQLite database and the schema layer that manages it.

    Opening a path that does not exist yet creates its parent directories
    and sets ``created``, which callers use to decide when to declare their
    tables. In-memory databases are always ``created``.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        config: DatabaseConfig | None = None,
        engine: Engine | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config or DatabaseConfig()
        self._logger = logger or structlog.get_logger(__name__)

        if path is None or str(path) == MEMORY:
            self.path: Path | None = None
            self.created = True
            db_path = MEMORY
        else:
            self.path = Path(path)
            self.created = not self.path.is_file()
            if self.created:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(self.path)

        self._executor = Executor(engine or create_engine_from_path(db_path), self._logger)
        self._executor.execute(f"PRAGMA foreign_keys = {'ON' if self._config.foreign_keys else 'OFF'}")

        self.catalog = CatalogSnapshot(self._executor, self._logger)
        self._schema = SchemaSynchronizer(
            executor=self._executor,
            catalog=self.catalog,
            indexes=IndexSynchronizer(self._executor, self.catalog, self._logger),
            migrator=Migrator(self._executor, self._config.foreign_keys, self._logger),
            logger=self._logger,
        )
        self.settings = SettingsStore(self._executor, self.catalog, self._schema, self._logger)
        self.fts = FullTextEngine(self._executor, self.catalog, self._config, self._logger)

        self._logger.info("database_opened", path=db_path, created=self.created)

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def last_error(self) -> str | None:
        return self._executor.last_error

    def create(
        self,
        table: str,
        fields: FieldsInput,
        indexes: Any = None,
        renames: Mapping[str, str] | None = None,
    ) -> bool:
        """Create ``table`` or bring it in line with ``fields``; see ``SchemaSynchronizer.create``."""
        return self._schema.create(table, fields, indexes, renames)

    def recreate(self, target: str | Path) -> bool:
        """Rebuild this database into the new file ``target``."""
        return recovery.recreate(self._executor, Path(target), self._logger)

    @staticmethod
    def in_order(field: str, ids: Sequence[Any]) -> str:
        """SQL restriction selecting ``ids`` and ordering rows in the given order.

        Example: ``in_order("id", [3, 1])`` gives
        ``id IN(3,1) ORDER BY CASE id WHEN 3 THEN 0 WHEN 1 THEN 1 ELSE NULL END ASC``.
        """
        values = [str(int(value)) for value in ids]
        cases = "".join(f" WHEN {value} THEN {position}" for position, value in enumerate(values))
        return f"{field} IN({','.join(values)}) ORDER BY CASE {field}{cases} ELSE NULL END ASC"

    def close(self) -> None:
        self._executor.dispose()
        self._logger.debug("database_closed", path=str(self.path) if self.path else MEMORY)

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

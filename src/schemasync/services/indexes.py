"""Reconciles a requested index set against the catalog snapshot for one table."""

import structlog

from schemasync.models.indexes import IndexSpec
from schemasync.services.catalog import CatalogSnapshot
from schemasync.services.executor import Executor


class IndexSynchronizer:
    """Creates, replaces and prunes indexes so a table carries exactly the requested set.

    Index names are derived from the table and its column group
    (``employees_title``), so the same request always maps to the same name.
    """

    def __init__(
        self,
        executor: Executor,
        catalog: CatalogSnapshot,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._logger = logger or structlog.get_logger(__name__)

    def reconcile(self, table: str, spec: IndexSpec) -> bool:
        """Bring the indexes of ``table`` in line with ``spec``.

        An empty spec is a no-op. Unchanged indexes are left alone, changed ones
        are dropped and recreated, and previously known indexes that are no
        longer requested are dropped.

        Args:
            table: Table whose indexes are reconciled.
            spec: Requested index set.

        Returns:
            True if every statement succeeded, False if any failed.
        """
        if spec.is_empty:
            return True

        outdated = self._catalog.indexes(table)
        current: dict[str, str] = {}
        requested: set[str] = set()
        ok = True

        for definition in spec.definitions(table):
            name = definition.name
            sql = definition.create_sql
            requested.add(name)
            previous = outdated.get(name)
            if previous == sql:
                current[name] = sql
                continue
            if previous is not None and not self._drop(name):
                current[name] = previous
                ok = False
                continue
            if self._executor.execute(sql):
                current[name] = sql
                self._logger.info("index_created", table=table, index=name, unique=definition.unique)
            else:
                ok = False

        for name, sql in outdated.items():
            if name in requested:
                continue
            if not self._drop(name):
                current[name] = sql
                ok = False

        self._catalog.set_indexes(table, current)
        return ok

    def _drop(self, name: str) -> bool:
        if not self._executor.execute(f"DROP INDEX {name}"):
            return False
        self._logger.info("index_dropped", index=name)
        return True

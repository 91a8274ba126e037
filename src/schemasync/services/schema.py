"""Create-or-update of ordinary tables from a declared definition."""

from collections.abc import Mapping
from typing import Any

import structlog

from schemasync.models.base import strip_quotes
from schemasync.models.definitions import FieldsInput, TableDefinition
from schemasync.models.indexes import IndexSpec
from schemasync.services.catalog import CatalogSnapshot
from schemasync.services.executor import Executor
from schemasync.services.indexes import IndexSynchronizer
from schemasync.services.migrator import Migrator


class SchemaSynchronizer:
    """Diffs a requested table definition against the catalog and applies the difference.

    New tables are created directly. Tables whose stored definition differs
    are rebuilt by the Migrator. Indexes are reconciled once the table has
    its final shape.
    """

    def __init__(
        self,
        executor: Executor,
        catalog: CatalogSnapshot,
        indexes: IndexSynchronizer,
        migrator: Migrator,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._indexes = indexes
        self._migrator = migrator
        self._logger = logger or structlog.get_logger(__name__)

    def create(
        self,
        table: str,
        fields: FieldsInput,
        indexes: Any = None,
        renames: Mapping[str, str] | None = None,
    ) -> bool:
        """Create ``table`` or alter it to match ``fields``.

        Args:
            table: Table name.
            fields: Column definitions; see ``TableDefinition.from_fields``.
            indexes: Requested index set, an ``IndexSpec`` or any shape
                ``IndexSpec.coerce`` accepts.
            renames: ``old -> new`` column renames applied when altering.

        Returns:
            True if the table was created or altered, False if it already
            matched or the change could not be applied.
        """
        definition = TableDefinition.from_fields(table, fields)
        spec = IndexSpec.coerce(indexes)
        name = definition.name
        sql = definition.create_sql()

        executed = self._catalog.table(name)
        if executed is not None and strip_quotes(sql) == strip_quotes(executed):
            self._indexes.reconcile(name, spec)
            return False

        self._catalog.set_table(name, sql)
        if executed is not None:
            if not self._migrator.alter(definition, renames):
                self._catalog.set_table(name, executed)
                return False
            # DROP TABLE inside the migration removed the old indexes.
            self._catalog.forget_indexes(name)
        elif self._executor.execute(sql):
            self._logger.info("table_created", table=name)
        else:
            self._catalog.forget_table(name)
            return False

        self._indexes.reconcile(name, spec)
        return True

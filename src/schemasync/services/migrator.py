"""Copy-based table alteration.

SQLite cannot change column types, constraints or names in place, so an
altered table is rebuilt: a shadow table ``<table>_copy`` is created with the
new definition, the surviving columns are copied across, the original is
dropped and the shadow renamed over it. The whole sequence runs inside one
``BEGIN IMMEDIATE`` transaction with foreign-key enforcement switched off.

Columns of the old table with no rename mapping and no same-named column in
the new definition are not copied; their new-schema counterparts take their
declared defaults.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from types import TracebackType

import structlog

from schemasync.models.definitions import TableDefinition
from schemasync.services.executor import Executor


class ImmediateTransaction:
    """All-or-nothing statement runner.

    Statements are run through ``run`` until one fails; later calls are
    skipped. On exit the transaction commits only if every statement
    succeeded and no exception escaped, otherwise it rolls back.
    """

    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self._began = False
        self.failed = False
        self.committed = False

    def __enter__(self) -> "ImmediateTransaction":
        self._began = self._executor.execute("BEGIN IMMEDIATE")
        self.failed = not self._began
        return self

    def run(self, sql: str) -> bool:
        if self.failed:
            return False
        if not self._executor.execute(sql):
            self.failed = True
        return not self.failed

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._began:
            return
        if self.failed or exc_type is not None:
            self._executor.execute("ROLLBACK")
            return
        self.committed = self._executor.execute("COMMIT")
        if not self.committed:
            self._executor.execute("ROLLBACK")


class Migrator:
    def __init__(
        self,
        executor: Executor,
        foreign_keys: bool = True,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._foreign_keys = foreign_keys
        self._logger = logger or structlog.get_logger(__name__)

    def plan(self, definition: TableDefinition, renames: Mapping[str, str]) -> dict[str, str]:
        """Work out which existing columns are copied into which new columns.

        One existing row is sampled to learn the present column names. An
        explicit ``old -> new`` rename is kept only if ``old`` exists and
        ``new`` is a field of the new definition. Every other existing column
        that is also a new field maps to itself, unless either side is
        already taken by an explicit rename.

        Returns:
            Ordered ``old -> new`` column mapping. Empty when the table has no rows.
        """
        sample = self._executor.row(f"SELECT * FROM {definition.name} LIMIT 1")
        if not sample:
            return {}

        existing = list(sample)
        fields = set(definition.field_names)
        mapping: dict[str, str] = {}
        for old, new in renames.items():
            if new in fields and old in existing:
                mapping[old] = new

        targets = set(mapping.values())
        for column in existing:
            if column in fields and column not in mapping and column not in targets:
                mapping[column] = column
                targets.add(column)
        return mapping

    def alter(self, definition: TableDefinition, renames: Mapping[str, str] | None = None) -> bool:
        """Rebuild ``definition.name`` with the new definition, preserving mapped data.

        Returns:
            True if the rebuild committed, False if it was rolled back and the
            original table left untouched.
        """
        table = definition.name
        shadow = f"{table}_copy"
        mapping = self.plan(definition, renames or {})

        statements = [definition.create_sql(shadow)]
        if mapping:
            new = ", ".join(mapping.values())
            old = ", ".join(mapping.keys())
            statements.append(f"INSERT INTO {shadow} ({new}) SELECT {old} FROM {table}")
        statements.append(f"DROP TABLE {table}")
        statements.append(f"ALTER TABLE {shadow} RENAME TO {table}")

        with self._foreign_keys_disabled():
            with ImmediateTransaction(self._executor) as transaction:
                for sql in statements:
                    if not transaction.run(sql):
                        break

        if not transaction.committed:
            self._logger.warning(
                "migration_rolled_back",
                table=table,
                error=self._executor.last_error,
            )
            return False

        self._logger.info(
            "table_migrated",
            table=table,
            copied_columns=list(mapping.values()),
        )
        return True

    @contextmanager
    def _foreign_keys_disabled(self) -> Iterator[None]:
        # The pragma is a no-op inside a transaction, so it brackets BEGIN/COMMIT.
        self._executor.execute("PRAGMA foreign_keys = OFF")
        try:
            yield
        finally:
            self._executor.execute(f"PRAGMA foreign_keys = {'ON' if self._foreign_keys else 'OFF'}")

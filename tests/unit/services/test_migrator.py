"""Unit tests for the Migrator and ImmediateTransaction."""

import pytest

from schemasync.models.definitions import TableDefinition
from schemasync.services.database import Database
from schemasync.services.migrator import ImmediateTransaction, Migrator


def _make_migrator(db: Database) -> Migrator:
    return Migrator(db.executor)


def _make_table(db: Database, sql: str, *rows: str) -> None:
    assert db.executor.execute(sql)
    for row in rows:
        assert db.executor.execute(row)


class TestPlan:
    """Tests for the column mapping used when copying data."""

    def test_empty_table_has_no_mapping(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT)")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "b": "TEXT"})

        assert _make_migrator(db).plan(definition, {"a": "b"}) == {}

    def test_identity_for_shared_columns(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT, gone TEXT)", "INSERT INTO t (a) VALUES ('x')")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "a": "TEXT", "new": "TEXT"})

        assert _make_migrator(db).plan(definition, {}) == {"id": "id", "a": "a"}

    def test_explicit_renames_come_first(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT)", "INSERT INTO t (a) VALUES ('x')")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "b": "TEXT"})

        mapping = _make_migrator(db).plan(definition, {"a": "b"})

        assert mapping == {"a": "b", "id": "id"}
        assert list(mapping) == ["a", "id"]

    def test_rename_target_is_not_also_identity_mapped(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT, b TEXT)", "INSERT INTO t (a, b) VALUES ('x', 'y')")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "b": "TEXT"})

        assert _make_migrator(db).plan(definition, {"a": "b"}) == {"a": "b", "id": "id"}

    def test_renames_of_missing_columns_are_ignored(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT)", "INSERT INTO t (a) VALUES ('x')")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "a": "TEXT"})

        mapping = _make_migrator(db).plan(definition, {"missing": "a", "a": "not_a_field"})

        assert mapping == {"id": "id", "a": "a"}


class TestAlter:
    """Tests for the copy-based rebuild."""

    def test_alter_issues_copy_sequence(self, db: Database, recorder) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT)", "INSERT INTO t (a) VALUES ('x')")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "b": "TEXT"})
        recorder.clear()

        assert _make_migrator(db).alter(definition, {"a": "b"}) is True

        assert "BEGIN IMMEDIATE" in recorder.statements
        assert "INSERT INTO t_copy (b, id) SELECT a, id FROM t" in recorder.statements
        assert recorder.statements.index("DROP TABLE t") < recorder.statements.index("ALTER TABLE t_copy RENAME TO t")
        assert recorder.statements[-2] == "COMMIT"
        assert recorder.statements[-1] == "PRAGMA foreign_keys = ON"
        assert db.executor.rows("SELECT id, b FROM t") == [{"id": 1, "b": "x"}]

    def test_existing_shadow_table_aborts(self, db: Database) -> None:
        _make_table(
            db,
            "CREATE TABLE t (id INTEGER PRIMARY KEY, a TEXT)",
            "INSERT INTO t (a) VALUES ('x')",
            "CREATE TABLE t_copy (stale TEXT)",
        )
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "a": "TEXT NOT NULL"})

        assert _make_migrator(db).alter(definition) is False
        assert db.executor.rows("SELECT id, a FROM t") == [{"id": 1, "a": "x"}]

    def test_foreign_keys_restored_to_configured_value(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (id INTEGER PRIMARY KEY)")
        definition = TableDefinition.from_fields("t", {"id": "INTEGER PRIMARY KEY", "a": "TEXT"})

        Migrator(db.executor, foreign_keys=False).alter(definition)

        assert db.executor.value("PRAGMA foreign_keys") == 0


class TestImmediateTransaction:
    """Tests for the all-or-nothing statement runner."""

    def test_commits_when_all_statements_succeed(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (a INTEGER)")

        with ImmediateTransaction(db.executor) as transaction:
            assert transaction.run("INSERT INTO t (a) VALUES (1)")
            assert transaction.run("INSERT INTO t (a) VALUES (2)")

        assert transaction.committed is True
        assert db.executor.value("SELECT COUNT(*) FROM t") == 2

    def test_rolls_back_and_skips_after_failure(self, db: Database, recorder) -> None:
        _make_table(db, "CREATE TABLE t (a INTEGER NOT NULL)")

        with ImmediateTransaction(db.executor) as transaction:
            transaction.run("INSERT INTO t (a) VALUES (1)")
            assert transaction.run("INSERT INTO t (a) VALUES (NULL)") is False
            assert transaction.run("INSERT INTO t (a) VALUES (3)") is False

        assert transaction.committed is False
        assert "INSERT INTO t (a) VALUES (3)" not in recorder.statements
        assert recorder.statements[-1] == "ROLLBACK"
        assert db.executor.value("SELECT COUNT(*) FROM t") == 0

    def test_rolls_back_on_exception(self, db: Database) -> None:
        _make_table(db, "CREATE TABLE t (a INTEGER)")

        with pytest.raises(RuntimeError):
            with ImmediateTransaction(db.executor) as transaction:
                transaction.run("INSERT INTO t (a) VALUES (1)")
                raise RuntimeError("boom")

        assert transaction.committed is False
        assert db.executor.value("SELECT COUNT(*) FROM t") == 0

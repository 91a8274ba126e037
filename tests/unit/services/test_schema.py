"""Unit tests for SchemaSynchronizer create-or-alter behaviour."""

from schemasync.models.indexes import IndexSpec
from schemasync.services.database import Database

EMPLOYEE_FIELDS = {
    "id": "INTEGER PRIMARY KEY",
    "name": "TEXT COLLATE NOCASE",
    "position": "TEXT NOT NULL DEFAULT ''",
}

RENAMED_FIELDS = {
    "id": "INTEGER PRIMARY KEY",
    "name": "TEXT UNIQUE COLLATE NOCASE",
    "title": "TEXT DEFAULT ''",
}

EMPLOYEES = [("Alice", "Engineer"), ("Bob", "Manager"), ("Carol", "Designer")]


def _seed_employees(db: Database) -> None:
    assert db.create("employees", EMPLOYEE_FIELDS, {"unique": "position"}) is True
    for name, position in EMPLOYEES:
        db.executor.execute("INSERT INTO employees (name, position) VALUES (?, ?)", (name, position))


def _user_indexes(db: Database, table: str) -> list[str]:
    rows = db.executor.rows(
        "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = ? AND sql IS NOT NULL ORDER BY name",
        (table,),
    )
    return [row["name"] for row in rows]


def _table_names(db: Database) -> set[str]:
    return {row["name"] for row in db.executor.rows("SELECT name FROM sqlite_master WHERE type = 'table'")}


class TestCreate:
    """Tests for creating new tables."""

    def test_new_table_is_created(self, db: Database) -> None:
        assert db.create("employees", EMPLOYEE_FIELDS) is True

        assert "employees" in _table_names(db)
        assert db.catalog.table("employees").startswith("CREATE TABLE employees (id INTEGER PRIMARY KEY")

    def test_second_identical_create_is_a_noop(self, db: Database, recorder) -> None:
        assert db.create("employees", EMPLOYEE_FIELDS, {"unique": "position"}) is True
        recorder.clear()

        assert db.create("employees", EMPLOYEE_FIELDS, {"unique": "position"}) is False
        assert recorder.statements == []

    def test_raw_fragment_constraints(self, db: Database) -> None:
        fields = {"a": "INTEGER", "b": "INTEGER", 0: "PRIMARY KEY (a, b)"}
        assert db.create("pairs", fields) is True

        db.executor.execute("INSERT INTO pairs (a, b) VALUES (1, 1)")
        assert db.executor.execute("INSERT INTO pairs (a, b) VALUES (1, 1)") is False

    def test_creates_requested_indexes(self, db: Database) -> None:
        db.create("employees", EMPLOYEE_FIELDS, ["name", "name, position"])

        assert _user_indexes(db, "employees") == ["employees_name", "employees_name_position"]

    def test_invalid_definition_returns_false_and_leaves_catalog_clean(self, db: Database) -> None:
        assert db.create("broken", {"id": "INTEGER PRIMARY KEY", "x": "NOT A ( TYPE"}) is False

        assert db.catalog.table("broken") is None
        assert db.last_error is not None


class TestAlter:
    """Tests for altering tables that already hold data."""

    def test_rename_preserves_data(self, db: Database) -> None:
        _seed_employees(db)

        changed = db.create("employees", RENAMED_FIELDS, "title", {"position": "title"})

        assert changed is True
        rows = db.executor.rows("SELECT id, name, title FROM employees ORDER BY id")
        assert rows == [
            {"id": 1, "name": "Alice", "title": "Engineer"},
            {"id": 2, "name": "Bob", "title": "Manager"},
            {"id": 3, "name": "Carol", "title": "Designer"},
        ]

    def test_alter_converges_indexes(self, db: Database) -> None:
        _seed_employees(db)
        assert _user_indexes(db, "employees") == ["employees_position"]

        db.create("employees", RENAMED_FIELDS, "title", {"position": "title"})

        assert _user_indexes(db, "employees") == ["employees_title"]
        assert list(db.catalog.indexes("employees")) == ["employees_title"]

    def test_new_constraints_apply_after_alter(self, db: Database) -> None:
        _seed_employees(db)
        db.create("employees", RENAMED_FIELDS, "title", {"position": "title"})

        assert db.executor.execute("INSERT INTO employees (name) VALUES ('alice')") is False

    def test_unmapped_column_is_dropped_and_new_column_defaults(self, db: Database) -> None:
        _seed_employees(db)
        fields = {
            "id": "INTEGER PRIMARY KEY",
            "name": "TEXT COLLATE NOCASE",
            "title": "TEXT DEFAULT 'unassigned'",
        }

        assert db.create("employees", fields) is True

        rows = db.executor.rows("SELECT * FROM employees ORDER BY id")
        assert [row["title"] for row in rows] == ["unassigned"] * 3
        assert [row["name"] for row in rows] == ["Alice", "Bob", "Carol"]
        assert "position" not in rows[0]

    def test_alter_of_empty_table(self, db: Database) -> None:
        db.create("employees", EMPLOYEE_FIELDS)

        assert db.create("employees", RENAMED_FIELDS) is True
        assert db.executor.rows("SELECT * FROM employees") == []
        assert "employees_copy" not in _table_names(db)

    def test_failed_copy_rolls_back(self, db: Database) -> None:
        db.create("notes", {"id": "INTEGER PRIMARY KEY", "note": "TEXT"}, "note")
        db.executor.execute("INSERT INTO notes (id, note) VALUES (1, NULL)")
        original = db.catalog.table("notes")

        changed = db.create("notes", {"id": "INTEGER PRIMARY KEY", "note": "TEXT NOT NULL"})

        assert changed is False
        assert "NOT NULL" in db.last_error
        assert db.catalog.table("notes") == original
        assert db.executor.rows("SELECT id, note FROM notes") == [{"id": 1, "note": None}]
        assert "notes_copy" not in _table_names(db)
        assert _user_indexes(db, "notes") == ["notes_note"]
        assert db.executor.value("PRAGMA foreign_keys") == 1

    def test_requoted_catalog_definition_is_not_drift(self, db: Database) -> None:
        _seed_employees(db)
        db.create("employees", RENAMED_FIELDS, "title", {"position": "title"})
        # ALTER TABLE ... RENAME stores the name quoted in sqlite_master.
        db.catalog.invalidate()

        assert db.create("employees", RENAMED_FIELDS, "title") is False

    def test_foreign_keys_survive_parent_rebuild(self, db: Database) -> None:
        db.create("parents", {"id": "INTEGER PRIMARY KEY", "label": "TEXT"})
        db.create("children", {"id": "INTEGER PRIMARY KEY", "parent_id": "INTEGER REFERENCES parents(id)"})
        db.executor.execute("INSERT INTO parents (id, label) VALUES (1, 'root')")
        db.executor.execute("INSERT INTO children (id, parent_id) VALUES (10, 1)")

        changed = db.create("parents", {"id": "INTEGER PRIMARY KEY", "label": "TEXT", "note": "TEXT DEFAULT ''"})

        assert changed is True
        assert db.executor.rows("PRAGMA foreign_key_check") == []
        assert db.executor.value("SELECT label FROM parents WHERE id = 1") == "root"
        assert db.executor.value("PRAGMA foreign_keys") == 1
        assert db.executor.execute("INSERT INTO children (id, parent_id) VALUES (11, 99)") is False


class TestIndexesOnUnchangedTable:
    """Tests for index reconciliation when the table itself is unchanged."""

    def test_switching_index_columns(self, db: Database) -> None:
        db.create("employees", EMPLOYEE_FIELDS, {"unique": "position"})

        assert db.create("employees", EMPLOYEE_FIELDS, "name") is False
        assert _user_indexes(db, "employees") == ["employees_name"]

    def test_switching_to_unique_replaces_index(self, db: Database) -> None:
        db.create("employees", EMPLOYEE_FIELDS, "name")

        db.create("employees", EMPLOYEE_FIELDS, IndexSpec.unique("name"))

        sql = db.executor.value("SELECT sql FROM sqlite_master WHERE name = 'employees_name'")
        assert sql == "CREATE UNIQUE INDEX employees_name ON employees (name)"

    def test_empty_spec_keeps_existing_indexes(self, db: Database) -> None:
        db.create("employees", EMPLOYEE_FIELDS, "name")

        db.create("employees", EMPLOYEE_FIELDS)

        assert _user_indexes(db, "employees") == ["employees_name"]

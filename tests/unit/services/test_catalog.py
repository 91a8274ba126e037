"""Unit tests for the CatalogSnapshot service."""

from schemasync.services.database import Database


class TestCatalogSnapshot:
    """Tests for lazy loading and in-place updates."""

    def test_loads_lazily_from_engine(self, db: Database) -> None:
        db.executor.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
        db.executor.execute("CREATE INDEX notes_body ON notes (body)")

        assert db.catalog.loaded is False
        assert db.catalog.table("notes") == "CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)"
        assert db.catalog.loaded is True
        assert db.catalog.indexes("notes") == {"notes_body": "CREATE INDEX notes_body ON notes (body)"}

    def test_ignores_automatic_indexes(self, db: Database) -> None:
        db.executor.execute("CREATE TABLE tags (name TEXT UNIQUE)")

        assert db.catalog.indexes("tags") == {}

    def test_loads_once(self, db: Database, recorder) -> None:
        db.catalog.table("anything")
        db.catalog.tables()
        db.catalog.indexes("anything")

        assert len(recorder.statements) == 1

    def test_updates_are_visible(self, db: Database) -> None:
        db.catalog.set_table("virtual", "CREATE TABLE virtual (a)")
        db.catalog.set_indexes("virtual", {"virtual_a": "CREATE INDEX virtual_a ON virtual (a)"})

        assert db.catalog.table("virtual") == "CREATE TABLE virtual (a)"
        assert "virtual_a" in db.catalog.indexes("virtual")

        db.catalog.forget_table("virtual")
        assert db.catalog.table("virtual") is None
        assert db.catalog.indexes("virtual") == {}

    def test_indexes_returns_copy(self, db: Database) -> None:
        db.catalog.set_indexes("t", {"t_a": "sql"})
        db.catalog.indexes("t")["t_b"] = "other"

        assert db.catalog.indexes("t") == {"t_a": "sql"}

    def test_invalidate_rereads_catalog(self, db: Database) -> None:
        db.catalog.set_table("phantom", "CREATE TABLE phantom (a)")
        db.catalog.invalidate()

        assert db.catalog.table("phantom") is None

"""Rebuild a database into a fresh file.

Used when a database file has been damaged: every table definition that can
still be read is recreated in the new file, its rows are copied across
through an attached database, and the indexes are recreated last. Shadow
tables that belong to FTS virtual tables are skipped because the virtual
table regenerates them. A table that cannot be copied is logged and
skipped rather than failing the rebuild.
"""

from pathlib import Path

import structlog

from schemasync.services.executor import Executor, create_engine_from_path

ATTACHED_NAME = "recreate"


def _is_virtual(sql: str) -> bool:
    return "VIRTUAL TABLE" in sql.upper()


def recreate(
    source: Executor,
    target: Path,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> bool:
    """Copy the schema and data reachable through ``source`` into a new file.

    Args:
        source: Executor connected to the database being rebuilt.
        target: Path of the new database file. Must not exist yet.
        logger: Optional structlog logger.

    Returns:
        True if the rebuild ran, False if ``target`` already exists or could
        not be attached.
    """
    logger = logger or structlog.get_logger(__name__)
    target = Path(target)
    if target.exists():
        logger.warning("recreate_target_exists", target=str(target))
        return False

    tables: dict[str, str] = {}
    indexes: list[str] = []
    for row in source.rows("SELECT type, name, sql FROM sqlite_master"):
        if not row["sql"]:
            continue
        if row["type"] == "table":
            tables[row["name"]] = row["sql"]
        elif row["type"] == "index":
            indexes.append(row["sql"])

    virtual = [name for name, sql in tables.items() if _is_virtual(sql)]
    for name in list(tables):
        if name.startswith("sqlite_"):
            del tables[name]
        elif name not in virtual and any(name.startswith(f"{table}_") for table in virtual):
            del tables[name]

    target.parent.mkdir(parents=True, exist_ok=True)
    destination = Executor(create_engine_from_path(str(target)), logger)
    try:
        for name, sql in tables.items():
            if not destination.execute(sql):
                logger.warning("recreate_table_skipped", table=name, error=destination.last_error)

        if not source.execute(f"ATTACH DATABASE ? AS {ATTACHED_NAME}", (str(target),)):
            return False
        try:
            for name in tables:
                _copy_rows(source, name, name in virtual, logger)
        finally:
            source.execute(f"DETACH DATABASE {ATTACHED_NAME}")

        for sql in indexes:
            destination.execute(sql)
    finally:
        destination.dispose()

    logger.info("database_recreated", target=str(target), table_count=len(tables), index_count=len(indexes))
    return True


def _copy_rows(
    source: Executor,
    table: str,
    virtual: bool,
    logger: structlog.stdlib.BoundLogger,
) -> None:
    sample = source.row(f"SELECT * FROM {table} LIMIT 1")
    if not sample:
        return
    columns = list(sample)
    if virtual:
        columns.insert(0, "docid")
    names = ", ".join(columns)
    if not source.execute(f"INSERT INTO {ATTACHED_NAME}.{table} ({names}) SELECT {names} FROM {table}"):
        logger.warning("recreate_rows_skipped", table=table, error=source.last_error)

"""Factory functions for opening databases.

Provides a production factory for file-backed databases and a test factory
that uses a private in-memory database for fast, isolated testing.
"""

from pathlib import Path

import structlog

from schemasync.models.config import DatabaseConfig
from schemasync.services.database import Database
from schemasync.services.executor import create_engine_from_path


def open_database(
    path: Path,
    config: DatabaseConfig | None = None,
) -> Database:
    """Open (and create if missing) a file-backed database.

    Args:
        path: Location of the SQLite file. Parent directories are created.
        config: Connection-level settings.

    Returns:
        Database ready for use. ``created`` is True when the file was new.
    """
    logger = structlog.get_logger(__name__)
    return Database(path=path, config=config, logger=logger)


def open_test_database(config: DatabaseConfig | None = None) -> Database:
    """Open an in-memory database for testing.

    Each call creates independent storage, so tests don't interfere.
    """
    logger = structlog.get_logger(__name__)
    engine = create_engine_from_path(":memory:")
    return Database(config=config, engine=engine, logger=logger)

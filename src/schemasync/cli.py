"""Schema and full-text search CLI.

Provides inspection and search commands over an existing SQLite database
managed by schemasync, plus a recovery rebuild into a fresh file.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from schemasync.services.database import Database
from schemasync.services.factory import open_database

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    logger_factory=lambda name: structlog.PrintLogger(file=sys.stderr),
    wrapper_class=structlog.BoundLogger,
    context_class=dict,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="schemasync",
    help="""Inspect schemasync databases and run ranked full-text searches.

Examples:

  # List tables and indexes
  uv run schemasync catalog ./app.db

  # Top 5 matches for "fish" in the results table
  uv run schemasync search ./app.db results fish --limit 5

  # Rebuild a damaged database into a new file
  uv run schemasync recreate ./app.db ./app.rebuilt.db""",
    rich_markup_mode="markdown",
)


def _open_existing(database: str) -> Database:
    path = Path(database)
    if not path.is_file():
        logger.error("database_not_found", database=str(path))
        raise typer.Exit(1)
    return open_database(path)


@app.command()
def catalog(
    database: str = typer.Argument(
        ...,
        help="SQLite database file",
    ),
) -> None:
    """List table and index definitions."""
    with _open_existing(database) as db:
        for name, sql in sorted(db.catalog.tables().items()):
            typer.echo(f"{name}: {sql}")
            for index_name, index_sql in sorted(db.catalog.indexes(name).items()):
                typer.echo(f"  {index_name}: {index_sql}")


@app.command()
def count(
    database: str = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Argument(..., help="FTS table name"),
    query: str = typer.Argument(..., help="MATCH expression"),
    where: str = typer.Option(
        "",
        "--where",
        "-w",
        help="Extra restriction; prefix FTS columns with 's.'",
    ),
) -> None:
    """Count full-text matches."""
    with _open_existing(database) as db:
        total = db.fts.count(table, query, where)
        if total is None:
            logger.error("count_failed", table=table, error=db.last_error)
            raise typer.Exit(1)
        typer.echo(str(total))


@app.command()
def search(
    database: str = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Argument(..., help="FTS table name"),
    query: str = typer.Argument(..., help="MATCH expression"),
    limit: Optional[str] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Top N, or 'offset,length' for a page",
    ),
    where: str = typer.Option(
        "",
        "--where",
        "-w",
        help="Extra restriction; prefix FTS columns with 's.'",
    ),
    weights: Optional[str] = typer.Option(
        None,
        "--weights",
        help="Comma-separated per-column weights",
    ),
) -> None:
    """Run a ranked full-text search and print one JSON object per result."""
    weight_list = [weight.strip() for weight in weights.split(",")] if weights else []
    with _open_existing(database) as db:
        logger.info("starting_search", table=table, query=query, limit=limit)
        results = db.fts.search(table, query, limit=limit or "", where=where, weights=weight_list)
        for result in results:
            typer.echo(json.dumps(result.to_record()))


@app.command()
def words(
    database: str = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Argument(..., help="FTS table name"),
    query: str = typer.Argument(..., help="MATCH expression"),
    docid: int = typer.Argument(..., help="Row docid"),
) -> None:
    """Show the terms that made a row match."""
    with _open_existing(database) as db:
        typer.echo(", ".join(db.fts.words(table, query, docid)))


@app.command()
def recreate(
    database: str = typer.Argument(..., help="SQLite database file to rebuild"),
    target: str = typer.Argument(..., help="New database file to create"),
) -> None:
    """Rebuild a database into a new file."""
    with _open_existing(database) as db:
        if not db.recreate(Path(target)):
            logger.error("recreate_failed", target=target, error=db.last_error)
            raise typer.Exit(1)
    typer.echo(f"Rebuilt {database} into {target}")


@app.command()
def version() -> None:
    """Show version information."""
    from schemasync import __version__

    typer.echo(f"schemasync {__version__}")

"""schemasync - Declarative SQLite schema reconciliation with FTS4 relevance ranking."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("schemasync")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]

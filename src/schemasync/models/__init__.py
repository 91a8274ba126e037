from schemasync.models.config import DatabaseConfig, SnippetConfig
from schemasync.models.definitions import Column, FtsDefinition, IndexDefinition, TableDefinition
from schemasync.models.enums import IndexKind, Tokenizer
from schemasync.models.indexes import IndexEntry, IndexSpec
from schemasync.models.results import OffsetRecord, SearchResult

__all__ = [
    "Column",
    "DatabaseConfig",
    "FtsDefinition",
    "IndexDefinition",
    "IndexEntry",
    "IndexKind",
    "IndexSpec",
    "OffsetRecord",
    "SearchResult",
    "SnippetConfig",
    "TableDefinition",
    "Tokenizer",
]

"""Full-text tables backed by SQLite FTS4.

Manages the virtual table's lifecycle (drop and recreate on drift, there is
no data-preserving path) and runs ranked searches. Ranking uses a
``rank(matchinfo(...), weights)`` scalar function registered on the
connection the first time a search runs.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from schemasync.models.base import strip_quotes
from schemasync.models.config import DatabaseConfig
from schemasync.models.definitions import FtsDefinition
from schemasync.models.enums import Tokenizer
from schemasync.models.results import SearchResult
from schemasync.services import ranking
from schemasync.services.catalog import CatalogSnapshot
from schemasync.services.executor import Executor
from schemasync.services.offsets import extract_terms
from schemasync.services.offsets import offset as decode_offsets

RANK_FUNCTION = "rank"
_RESULT_COLUMNS = frozenset({"docid", "snippet", "offsets", "rank"})

Limit = int | str | tuple[int, int] | None
_WHERE_KEYWORD = re.compile(r"\bwhere\b", re.IGNORECASE)


def fold_where(where: str | None) -> str:
    """Turn a caller's restriction into a prefix that the MATCH clause can follow.

    ``""`` becomes ``WHERE``; ``"a = 1"`` becomes ``WHERE a = 1 AND``; a
    fragment that already contains ``WHERE`` (for example a join) only gets
    ``AND`` appended.
    """
    if not where or not where.strip():
        return "WHERE"
    where = where.strip()
    if not _WHERE_KEYWORD.search(where):
        return f"WHERE {where} AND"
    return f"{where} AND"


def parse_limit(limit: Limit, default_length: int = 10) -> tuple[int, int] | None:
    """Resolve a limit into ``(offset, length)``, or None when unbounded.

    An integer (or digit string) means the top N. Otherwise the value is read
    as ``"offset,length"``; a missing length falls back to ``default_length``.
    """
    if limit is None or limit == "" or limit == 0 or limit == "0":
        return None
    if isinstance(limit, tuple):
        offset, length = limit
        return int(offset), int(length)
    if isinstance(limit, int):
        return 0, limit
    text = str(limit).strip()
    if text.isdigit():
        return 0, int(text)
    parts = re.sub(r"[^0-9,]", "", text).split(",")
    offset = int(parts[0]) if parts[0] else 0
    length = int(parts[1]) if len(parts) > 1 and parts[1] else default_length
    return offset, length


def _literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class FullTextEngine:
    def __init__(
        self,
        executor: Executor,
        catalog: CatalogSnapshot,
        config: DatabaseConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._config = config or DatabaseConfig()
        self._logger = logger or structlog.get_logger(__name__)

    def create(self, table: str, fields: str | Sequence[str], tokenizer: Tokenizer | str | None = None) -> bool:
        """Create the FTS4 table, or drop and recreate it if its definition changed.

        Recreating discards the indexed content; callers must reinsert documents.

        Returns:
            True if the table was created anew, False if it already matched or
            a statement failed.
        """
        definition = FtsDefinition(
            name=table,
            fields=fields,
            tokenizer=tokenizer or self._config.default_tokenizer,
        )
        name = definition.name
        sql = definition.create_sql

        executed = self._catalog.table(name)
        if executed is not None and strip_quotes(sql) == strip_quotes(executed):
            return False

        if executed is not None:
            if not self._executor.execute(f"DROP TABLE {name}"):
                return False
            self._catalog.forget_table(name)

        if not self._executor.execute(sql):
            return False
        self._catalog.set_table(name, sql)
        self._logger.info(
            "fts_table_recreated" if executed is not None else "fts_table_created",
            table=name,
            fields=list(definition.fields),
            tokenizer=definition.tokenizer,
        )
        return True

    def count(self, table: str, search: str, where: str = "") -> int | None:
        """Number of rows in ``table`` matching ``search``, or None if the query failed."""
        value = self._executor.value(
            f"SELECT COUNT(*) FROM {table} AS s {fold_where(where)} s.{table} MATCH ?",
            (search,),
        )
        return int(value) if value is not None else None

    def search(
        self,
        table: str,
        search: str,
        limit: Limit = "",
        where: str = "",
        fields: Sequence[str] = (),
        weights: ranking.Weights = (),
    ) -> list[SearchResult]:
        """Ranked full-text search.

        With a limit, the page of docids is chosen by rank in an inner
        subquery and joined back for snippets and offsets, so truncation
        happens after ranking. Without one, ranking and ordering happen in a
        single pass.

        Args:
            table: FTS table name.
            search: MATCH expression.
            limit: Top-N integer, ``"offset,length"`` string, ``(offset, length)`` or empty.
            where: Extra restriction, or a join ending in ``WHERE ...``. Prefix
                the FTS table's columns with ``s.``.
            fields: Extra select-list expressions, e.g. ``["s.title"]``.
            weights: Per-column weights in declaration order (default 1 each),
                as a sequence or a comma-separated string.

        Returns:
            Results ordered by descending rank; empty on failure.
        """
        if not self._ensure_rank():
            return []

        condition = fold_where(where)
        extra = "".join(f"{field}, " for field in fields)
        weights_csv = ranking.format_weights(weights)
        snippet = self._config.snippet
        rank_expr = f"{RANK_FUNCTION}(matchinfo(s.{table}), ?)"

        select = (
            f"SELECT s.docid AS docid, {extra}"
            f"snippet(s.{table}, {_literal(snippet.start)}, {_literal(snippet.end)}, "
            f"{_literal(snippet.ellipsis)}, {snippet.column}, {snippet.tokens}) AS snippet, "
            f"offsets(s.{table}) AS offsets, "
            f"{rank_expr} AS rank "
        )

        page = parse_limit(limit, self._config.default_page_length)
        if page is None:
            sql = select + (
                f"FROM {table} AS s {condition} s.{table} MATCH ? "
                "ORDER BY rank DESC, s.docid ASC"
            )
            params: tuple[Any, ...] = (weights_csv, search)
        else:
            offset, length = page
            sql = select + (
                f"FROM {table} AS s JOIN ("
                f"SELECT s.docid AS docid, {rank_expr} AS rank "
                f"FROM {table} AS s {condition} s.{table} MATCH ? "
                f"ORDER BY rank DESC, s.docid ASC LIMIT {int(length)} OFFSET {int(offset)}"
                f") AS ranktable ON ranktable.docid = s.docid {condition} s.{table} MATCH ? "
                "ORDER BY ranktable.rank DESC, s.docid ASC"
            )
            params = (weights_csv, weights_csv, search, search)

        results = [self._to_result(row) for row in self._executor.rows(sql, params)]
        self._logger.debug("fts_search", table=table, search=search, page=page, result_count=len(results))
        return results

    def words(self, table: str, search: str, docid: int) -> list[str]:
        """Terms in row ``docid`` that made it match ``search``, reverse-sorted."""
        docid = int(docid)
        results = self.search(table, search, limit=1, where=f"s.docid = {docid}")
        if not results:
            return []
        row = self._executor.row(f"SELECT * FROM {table} WHERE docid = ? LIMIT 1", (docid,))
        if row is None:
            return []
        return extract_terms(results[0].offsets, list(row.values()))

    @staticmethod
    def offset(row: Mapping[str, Any], fields: Sequence[str]) -> list[str]:
        return decode_offsets(row, fields)

    def rank(self, info: bytes | None, weights: ranking.Weights = "") -> float:
        return ranking.rank(info, weights, low_byte_only=self._config.legacy_rank_truncation)

    def _ensure_rank(self) -> bool:
        if self._executor.has_function(RANK_FUNCTION):
            return True
        return self._executor.register_function(RANK_FUNCTION, 2, self.rank)

    def _to_result(self, row: dict[str, Any]) -> SearchResult:
        return SearchResult(
            docid=row["docid"],
            snippet=row["snippet"],
            offsets=row["offsets"],
            rank=row["rank"],
            fields={key: value for key, value in row.items() if key not in _RESULT_COLUMNS},
        )

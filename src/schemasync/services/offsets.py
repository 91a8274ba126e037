"""Recover matched terms from FTS ``offsets()`` output."""

from collections.abc import Mapping, Sequence
from typing import Any

from schemasync.models.results import OffsetRecord


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def extract_terms(offsets: str | None, values: Sequence[Any]) -> list[str]:
    """Return the distinct matched terms, reverse-sorted.

    Offsets are UTF-8 byte positions into the column values. A record that
    continues the previous one (same column, next query term, starting one
    byte after the previous term ends) is joined to it with a space, which
    rebuilds phrase matches such as ``"fish fry"``.
    """
    words: list[str] = []
    expected: tuple[int, int, int] | None = None
    for record in OffsetRecord.parse(offsets):
        text = _as_bytes(values[record.column]) if record.column < len(values) else b""
        word = text[record.byte_offset : record.byte_end].decode("utf-8", errors="ignore").lower()
        if words and expected == (record.column, record.term, record.byte_offset):
            word = f"{words.pop()} {word}"
        words.append(word)
        expected = (record.column, record.term + 1, record.byte_end + 1)
    return sorted(set(words), reverse=True)


def offset(row: Mapping[str, Any], fields: Sequence[str]) -> list[str]:
    """Decode ``row["offsets"]`` against the values of ``fields`` in ``row``.

    Args:
        row: Mapping holding each field value plus an ``offsets`` entry.
        fields: Field names in the order they are declared in the FTS table.
    """
    return extract_terms(row.get("offsets"), [row.get(field) for field in fields])

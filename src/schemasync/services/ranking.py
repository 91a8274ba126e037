"""Relevance ranking over FTS4 ``matchinfo()`` statistics.

``matchinfo(table)`` with the default ``pcx`` format returns a blob of
unsigned 32-bit integers in native byte order: the phrase count, the column
count, then for every phrase and column three counters (hits in this row,
hits across all rows, rows with at least one hit).

Historically only the lowest byte of each counter was read, which silently
truncated any statistic above 255. Counters are now decoded in full; pass
``low_byte_only=True`` to reproduce the old scores.
"""

import math
import struct
import sys
from collections.abc import Sequence

SLOT_SIZE = 4
COUNTERS_PER_COLUMN = 3

Weights = str | Sequence[float | int | str] | None


def decode_counters(info: bytes, low_byte_only: bool = False) -> list[int]:
    count = len(info) // SLOT_SIZE
    if low_byte_only:
        return [
            int.from_bytes(info[i * SLOT_SIZE : (i + 1) * SLOT_SIZE], sys.byteorder) & 0xFF
            for i in range(count)
        ]
    return list(struct.unpack(f"={count}I", info[: count * SLOT_SIZE]))


def parse_weights(weights: Weights) -> list[float]:
    """Parse per-column weights from a CSV string or a sequence.

    Blank or unparsable entries fall back to 1. Negative weights clamp to 0.
    """
    if weights is None or weights == "":
        return []
    parts = weights.split(",") if isinstance(weights, str) else list(weights)
    parsed: list[float] = []
    for part in parts:
        try:
            weight = float(part.strip() if isinstance(part, str) else part)
        except (TypeError, ValueError):
            weight = 1.0
        if not math.isfinite(weight):
            weight = 1.0
        parsed.append(max(weight, 0.0))
    return parsed


def format_weights(weights: Weights) -> str:
    if isinstance(weights, str):
        return weights
    return ",".join(str(weight) for weight in weights or ())


def rank(info: bytes | None, weights: Weights = "", low_byte_only: bool = False) -> float:
    """Score one matched row.

    Each column contributes ``(rows_with_hit / total_hits) * hits_here``
    times its weight (default 1), summed over every phrase.
    """
    if not info:
        return 0.0
    counters = decode_counters(bytes(info), low_byte_only=low_byte_only)
    if len(counters) < 2:
        return 0.0

    phrases, columns = counters[0], counters[1]
    column_weights = parse_weights(weights)
    score = 0.0
    for phrase in range(phrases):
        base = 2 + phrase * columns * COUNTERS_PER_COLUMN
        for column in range(columns):
            start = base + column * COUNTERS_PER_COLUMN
            stats = counters[start : start + COUNTERS_PER_COLUMN]
            if len(stats) < COUNTERS_PER_COLUMN:
                return score
            here, total, rows = stats
            relevance = (rows / total) * here if total else 0.0
            weight = column_weights[column] if column < len(column_weights) else 1.0
            score += relevance * weight
    return score

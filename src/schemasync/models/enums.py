from enum import StrEnum


class IndexKind(StrEnum):
    NONE = "none"
    SIMPLE = "simple"
    UNIQUE = "unique"
    MIXED = "mixed"


class Tokenizer(StrEnum):
    SIMPLE = "simple"
    PORTER = "porter"
    UNICODE61 = "unicode61"
    ICU = "icu"

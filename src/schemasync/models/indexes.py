"""Requested index sets for one table.

``IndexSpec`` is a small tagged variant: ``none``, ``simple`` (plain
indexes), ``unique`` (unique indexes) or ``mixed``. Each entry names one
index by its comma-separated column group.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, field_validator, model_validator

from schemasync.models.base import FrozenModel, ensure_non_empty_text
from schemasync.models.definitions import IndexDefinition
from schemasync.models.enums import IndexKind

UNIQUE_KEY = "unique"


class IndexEntry(FrozenModel):
    unique: bool = False
    columns: str

    @field_validator("columns")
    @classmethod
    def _validate_columns(cls, value: str) -> str:
        return ensure_non_empty_text(value, "columns")

    def definition(self, table: str) -> IndexDefinition:
        return IndexDefinition(table=table, columns=self.columns, unique=self.unique)


class IndexSpec(FrozenModel):
    kind: IndexKind = IndexKind.NONE
    entries: tuple[IndexEntry, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _validate_kind(self) -> "IndexSpec":
        if self.kind is IndexKind.NONE and self.entries:
            raise ValueError("an empty index spec cannot carry entries")
        if self.kind is not IndexKind.NONE and not self.entries:
            raise ValueError(f"a {self.kind} index spec needs at least one entry")
        if self.kind is IndexKind.SIMPLE and any(entry.unique for entry in self.entries):
            raise ValueError("simple index spec cannot contain unique entries")
        if self.kind is IndexKind.UNIQUE and not all(entry.unique for entry in self.entries):
            raise ValueError("unique index spec must contain only unique entries")
        return self

    @classmethod
    def none(cls) -> "IndexSpec":
        return cls()

    @classmethod
    def simple(cls, *groups: str) -> "IndexSpec":
        return cls(kind=IndexKind.SIMPLE, entries=tuple(IndexEntry(columns=group) for group in groups))

    @classmethod
    def unique(cls, *groups: str) -> "IndexSpec":
        return cls(
            kind=IndexKind.UNIQUE,
            entries=tuple(IndexEntry(unique=True, columns=group) for group in groups),
        )

    @classmethod
    def mixed(cls, entries: Iterable[tuple[bool, str]]) -> "IndexSpec":
        return cls(
            kind=IndexKind.MIXED,
            entries=tuple(IndexEntry(unique=unique, columns=group) for unique, group in entries),
        )

    @classmethod
    def coerce(cls, value: Any) -> "IndexSpec":
        """Accept the loose shapes callers pass around.

        ``None`` or ``""`` is empty, a string is one column group, a sequence
        is several groups, and a mapping marks the value of a ``unique`` key
        (any case) as unique index groups.
        """
        if isinstance(value, IndexSpec):
            return value
        if value is None or value == "" or value == [] or value == {}:
            return cls.none()
        if isinstance(value, str):
            return cls.simple(value)
        if isinstance(value, Mapping):
            entries: list[tuple[bool, str]] = []
            for key, groups in value.items():
                unique = isinstance(key, str) and key.lower() == UNIQUE_KEY
                if isinstance(groups, str):
                    groups = [groups]
                entries.extend((unique, group) for group in groups)
            return cls._from_entries(entries)
        if isinstance(value, Iterable):
            groups = list(value)
            if not groups:
                return cls.none()
            if not all(isinstance(group, str) for group in groups):
                raise TypeError("index groups must be strings")
            return cls.simple(*groups)
        raise TypeError(f"unsupported index specification: {value!r}")

    @classmethod
    def _from_entries(cls, entries: list[tuple[bool, str]]) -> "IndexSpec":
        if not entries:
            return cls.none()
        if all(unique for unique, _ in entries):
            return cls.unique(*(group for _, group in entries))
        if not any(unique for unique, _ in entries):
            return cls.simple(*(group for _, group in entries))
        return cls.mixed(entries)

    @property
    def is_empty(self) -> bool:
        return self.kind is IndexKind.NONE

    def definitions(self, table: str) -> list[IndexDefinition]:
        return [entry.definition(table) for entry in self.entries]


__all__ = ["IndexEntry", "IndexSpec"]

"""Canonical definitions for tables, indexes and full-text tables.

Each definition renders the exact ``CREATE ...`` text that is both executed
against the engine and remembered in the catalog snapshot. Drift detection
compares these texts, so rendering must be deterministic.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, field_validator, model_validator

from schemasync.models.base import FrozenModel, ensure_identifier, ensure_non_empty_text
from schemasync.models.enums import Tokenizer

COLUMN_SEPARATOR = ", \n\t"

FieldsInput = Mapping[str | int, str] | Iterable[str | tuple[str, str]]


class Column(FrozenModel):
    """A named column (``name type``) or a raw fragment such as a table constraint."""

    name: str | None = None
    definition: str

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str | None:
        if value is None:
            return None
        return ensure_identifier(value, "column name")

    @model_validator(mode="after")
    def _require_fragment(self) -> "Column":
        if self.name is None:
            ensure_non_empty_text(self.definition, "raw column fragment")
        return self

    @property
    def sql(self) -> str:
        if self.name is None:
            return self.definition
        return f"{self.name} {self.definition}".rstrip()


class TableDefinition(FrozenModel):
    name: str
    columns: tuple[Column, ...] = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return ensure_identifier(value, "table name")

    @classmethod
    def from_fields(cls, name: str, fields: FieldsInput) -> "TableDefinition":
        """Build a definition from a field mapping or sequence.

        Mapping keys that are strings name a column; integer keys mark the
        value as a raw fragment inserted verbatim. Sequence items are either
        raw fragment strings or ``(name, type)`` pairs.
        """
        columns: list[Column] = []
        if isinstance(fields, Mapping):
            for key, definition in fields.items():
                if isinstance(key, int):
                    columns.append(Column(definition=definition))
                else:
                    columns.append(Column(name=key, definition=definition))
        else:
            for item in fields:
                if isinstance(item, str):
                    columns.append(Column(definition=item))
                elif isinstance(item, tuple) and len(item) == 2:
                    columns.append(Column(name=item[0], definition=item[1]))
                else:
                    raise TypeError(f"unsupported field entry: {item!r}")
        return cls(name=name, columns=tuple(columns))

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns if column.name is not None)

    @property
    def columns_sql(self) -> str:
        return COLUMN_SEPARATOR.join(column.sql for column in self.columns)

    def create_sql(self, table: str | None = None) -> str:
        return f"CREATE TABLE {table or self.name} ({self.columns_sql})"


class IndexDefinition(FrozenModel):
    table: str
    columns: tuple[str, ...] = Field(min_length=1)
    unique: bool = False

    @field_validator("table", mode="before")
    @classmethod
    def _validate_table(cls, value: Any) -> str:
        return ensure_identifier(value, "table name")

    @field_validator("columns", mode="before")
    @classmethod
    def _split_columns(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            value = value.split(",")
        columns = tuple(column.strip() for column in value)
        if not all(columns):
            raise ValueError("index columns cannot be empty")
        return columns

    @property
    def name(self) -> str:
        return f"{self.table}_{'_'.join(self.columns)}"

    @property
    def create_sql(self) -> str:
        unique = " UNIQUE " if self.unique else " "
        return f"CREATE{unique}INDEX {self.name} ON {self.table} ({', '.join(self.columns)})"


class FtsDefinition(FrozenModel):
    name: str
    fields: tuple[str, ...] = Field(min_length=1)
    tokenizer: str = Tokenizer.PORTER.value

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return ensure_identifier(value, "table name")

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            value = [value]
        return tuple(ensure_identifier(field, "fts field") for field in value)

    @field_validator("tokenizer", mode="before")
    @classmethod
    def _normalize_tokenizer(cls, value: Any) -> str:
        if isinstance(value, Tokenizer):
            return value.value
        return ensure_non_empty_text(value, "tokenizer").strip()

    @property
    def create_sql(self) -> str:
        return f"CREATE VIRTUAL TABLE {self.name} USING fts4({', '.join(self.fields)}, tokenize={self.tokenizer})"


__all__ = ["Column", "TableDefinition", "IndexDefinition", "FtsDefinition", "FieldsInput"]

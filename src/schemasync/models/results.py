from typing import Any, ClassVar

from pydantic import Field, field_validator

from schemasync.models.base import FrozenModel, RecordModel, ensure_fields_dict


class OffsetRecord(FrozenModel):
    """Location of one matched term inside one column of a matched row."""

    column: int = Field(ge=0)
    term: int = Field(ge=0)
    byte_offset: int = Field(ge=0)
    byte_length: int = Field(ge=0)

    @classmethod
    def parse(cls, offsets: str | None) -> list["OffsetRecord"]:
        """Parse an FTS ``offsets()`` string into groups of four integers.

        A trailing incomplete group is ignored.
        """
        if not offsets:
            return []
        numbers = [int(part) for part in offsets.split()]
        return [
            cls(
                column=numbers[i],
                term=numbers[i + 1],
                byte_offset=numbers[i + 2],
                byte_length=numbers[i + 3],
            )
            for i in range(0, len(numbers) - 3, 4)
        ]

    @property
    def byte_end(self) -> int:
        return self.byte_offset + self.byte_length


class SearchResult(RecordModel):
    SCHEMA_VERSION: ClassVar[str] = "search_result.v1"

    schema_version: str = Field(default=SCHEMA_VERSION)
    docid: int
    snippet: str = ""
    offsets: str = ""
    rank: float = Field(ge=0.0)
    fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator("snippet", "offsets", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("rank", mode="before")
    @classmethod
    def _coerce_rank(cls, value: Any) -> float:
        return 0.0 if value is None else float(value)

    @field_validator("fields", mode="before")
    @classmethod
    def _normalize_fields(cls, value: Any) -> dict[str, Any]:
        return ensure_fields_dict(value)

    def offset_records(self) -> list[OffsetRecord]:
        return OffsetRecord.parse(self.offsets)


__all__ = ["OffsetRecord", "SearchResult"]

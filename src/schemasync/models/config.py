from pydantic import Field

from schemasync.models.base import FrozenModel
from schemasync.models.enums import Tokenizer


class SnippetConfig(FrozenModel):
    """Arguments handed to the FTS4 ``snippet()`` auxiliary function."""

    start: str = "<b>"
    end: str = "</b>"
    ellipsis: str = "<b>...</b>"
    column: int = Field(default=-1, ge=-1)
    tokens: int = Field(default=50, ge=1, le=64)


class DatabaseConfig(FrozenModel):
    """Connection-level settings for a schemasync database.

    ``legacy_rank_truncation`` reproduces the historical ranking behaviour
    where only the lowest byte of each match statistic was read. Leave it off
    unless scores must match ones stored by earlier releases.
    """

    foreign_keys: bool = True
    default_tokenizer: Tokenizer = Tokenizer.PORTER
    default_page_length: int = Field(default=10, gt=0)
    snippet: SnippetConfig = Field(default_factory=SnippetConfig)
    legacy_rank_truncation: bool = False


__all__ = ["DatabaseConfig", "SnippetConfig"]

"""Data types for index discovery and snapshot retrieval.

The index document is decoded once, at the boundary, into the pydantic
models below; traversal never touches raw JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property

from pydantic import BaseModel, ConfigDict, Field


class IndexFile(BaseModel):
    """File descriptor of the CollecTor index."""

    model_config = ConfigDict(extra="ignore")

    path: str
    last_modified: str


class IndexDirectory(BaseModel):
    """Directory node: child directories and/or files."""

    model_config = ConfigDict(extra="ignore")

    path: str
    directories: list[IndexDirectory] = Field(default_factory=list)
    files: list[IndexFile] = Field(default_factory=list)

    @cached_property
    def children(self) -> dict[str, IndexDirectory]:
        """Child directories by name. First occurrence wins on duplicate names."""
        children: dict[str, IndexDirectory] = {}
        for child in self.directories:
            children.setdefault(child.path, child)
        return children


class IndexDocument(IndexDirectory):
    """Root of index/index.json. Its own ``path`` is the base URL, if present."""

    path: str = ""


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """A discovered snapshot file, relative to the base URL."""

    path: str
    last_modified_millis: int


@dataclass(frozen=True, slots=True)
class FetchedFile:
    """One retrieved snapshot.

    ``raw_bytes`` and ``text`` come from the same response body; digests use
    the bytes, parsing uses the text.
    """

    path: str
    last_modified_millis: int
    raw_bytes: bytes = field(repr=False)
    text: str = field(repr=False)


@dataclass(slots=True)
class FetchReport:
    """Outcome of one retrieval batch."""

    files: list[FetchedFile] = field(default_factory=list)
    error_count: int = 0

    @property
    def fetched_count(self) -> int:
        return len(self.files)

"""
Chunking Schemas

Pydantic schemas for chunker input items, intermediate structural units
and emitted chunks.
"""

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SectionType(enum.StrEnum):
    """Parser family that produced a chunk."""

    BAB = "bab"
    PASAL = "pasal"
    NUMERIC = "numeric"
    WORD = "word"
    GENERIC = "generic"


class InputItem(BaseModel):
    """One page (or one whole document) of extracted text.

    Attributes:
        title: Label for the source, used when no source filename is given.
        data: Raw extracted text. Missing or blank items are skipped by the
            chunker.
        page_number: Page index within the source document.
        metadata: Free-form caller attributes.
        external_sources: External link descriptors for this item. Lifted
            from ``metadata["externalSources"]`` when not given directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    data: str | None = None
    page_number: int | None = Field(default=None, alias="pageNumber")
    metadata: dict[str, Any] = Field(default_factory=dict)
    external_sources: list[dict[str, Any]] | None = Field(default=None, alias="externalSources")

    @model_validator(mode="after")
    def _lift_external_sources(self) -> "InputItem":
        if self.external_sources is None:
            nested = self.metadata.get("externalSources")
            if isinstance(nested, list):
                self.external_sources = list(nested)
        return self


class ChapterUnit(BaseModel):
    """A "BAB <roman>" chapter. ``content`` includes the marker line."""

    roman_numeral: str
    title: str | None = None
    content: str


class ArticleUnit(BaseModel):
    """A "Pasal <n>" article with the chapter active when it started."""

    chapter_roman_numeral: str | None = None
    chapter_title: str | None = None
    article_number: str
    article_title: str | None = None
    content: str


class SectionUnit(BaseModel):
    """A numbered ("6.4.") or keyword ("Purpose") policy section."""

    section_number: str | None = None
    section_title: str | None = None
    content: str

    @property
    def section_type(self) -> SectionType:
        return SectionType.NUMERIC if self.section_number else SectionType.WORD


StructuralUnit = ChapterUnit | ArticleUnit | SectionUnit


class OutputChunk(BaseModel):
    """A size-bounded chunk ready for embedding.

    Attributes:
        title: "<file> :: <locator> [i/n]".
        metadata: Base metadata merged with unit fields and externalSources.
        data: Chunk text payload.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    data: str

    def to_record(self) -> dict[str, Any]:
        """Plain dict in the shape the downstream pipeline consumes."""
        return {"title": self.title, "metadata": dict(self.metadata), "data": self.data}


class ChunkingStats(BaseModel):
    """Counters for a single chunker invocation."""

    items_received: int = 0
    items_skipped: int = 0
    chunks_emitted: int = 0
    duplicates_dropped: int = 0
    groups_capped: int = 0
    merged_for_limit: bool = False


class ChunkingResult(BaseModel):
    """Chunks produced by one invocation together with its counters."""

    chunks: list[OutputChunk] = Field(default_factory=list)
    stats: ChunkingStats = Field(default_factory=ChunkingStats)

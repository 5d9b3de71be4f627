"""
Structure-Aware Document Chunking

Turns extracted document pages into size-bounded chunks for retrieval.
Each page is sanitized, its structure detected (chapters, articles,
numbered/keyword sections or none), every structural unit split into
chunks, and every chunk tagged with a title and metadata. Duplicate
payloads are dropped and the total chunk count is bounded.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from knowledge_chunker.core.config import settings
from knowledge_chunker.schemas.chunking import (
    ArticleUnit,
    ChapterUnit,
    ChunkingResult,
    ChunkingStats,
    InputItem,
    OutputChunk,
    SectionType,
    SectionUnit,
)
from knowledge_chunker.services.splitting import ChunkSplitter
from knowledge_chunker.services.structure import detect_units
from knowledge_chunker.services.text import sanitize

logger = logging.getLogger(__name__)

_POSITION_RE = re.compile(r"\[\d+/\d+\]")


class _Run:
    """Mutable state of a single invocation: output list, dedup set, counters."""

    def __init__(self) -> None:
        self.chunks: list[OutputChunk] = []
        self.seen: set[str] = set()
        self.stats = ChunkingStats()

    def emit(self, title: str, metadata: dict[str, Any], payload: str) -> None:
        if payload in self.seen:
            self.stats.duplicates_dropped += 1
            return
        self.seen.add(payload)
        self.chunks.append(OutputChunk(title=title, metadata=metadata, data=payload))


class DocumentChunker:
    """Structure-aware chunker for HR and regulatory documents.

    The chunker is a pure batch transform: no I/O and no state kept
    between calls, so one instance may be shared across threads.

    Args:
        max_len: Max characters per chunk. Defaults to settings.CHUNK_MAX_LEN.
        min_len: Merge threshold for small chunks. Defaults to settings.CHUNK_MIN_LEN.
        min_unit_len: Min article/section content length.
            Defaults to settings.CHUNK_MIN_UNIT_LEN.
        max_per_group: Max chunks per structural unit.
            Defaults to settings.CHUNK_MAX_PER_GROUP.
        max_total: Max chunks per invocation. Defaults to settings.CHUNK_MAX_TOTAL.
        default_document_name: Title fallback. Defaults to settings.DEFAULT_DOCUMENT_NAME.
    """

    def __init__(
        self,
        max_len: int | None = None,
        min_len: int | None = None,
        min_unit_len: int | None = None,
        max_per_group: int | None = None,
        max_total: int | None = None,
        default_document_name: str | None = None,
    ) -> None:
        self._splitter = ChunkSplitter(
            max_len=max_len, min_len=min_len, max_per_group=max_per_group
        )
        self._min_unit_len = (
            min_unit_len if min_unit_len is not None else settings.CHUNK_MIN_UNIT_LEN
        )
        self._max_total = max_total if max_total is not None else settings.CHUNK_MAX_TOTAL
        self._default_name = default_document_name or settings.DEFAULT_DOCUMENT_NAME

        if self._max_total <= 0:
            raise ValueError(f"max_total ({self._max_total}) must be positive")

    @property
    def splitter(self) -> ChunkSplitter:
        return self._splitter

    @property
    def max_total(self) -> int:
        return self._max_total

    def chunk_items(
        self,
        items: Iterable[InputItem | Mapping[str, Any]],
        base_metadata: Mapping[str, Any] | None = None,
        source_file_name: str | None = None,
    ) -> list[OutputChunk]:
        """Chunk a batch of items. See :meth:`run`."""
        return self.run(items, base_metadata, source_file_name).chunks

    def run(
        self,
        items: Iterable[InputItem | Mapping[str, Any]],
        base_metadata: Mapping[str, Any] | None = None,
        source_file_name: str | None = None,
    ) -> ChunkingResult:
        """Chunk a batch of items and report what happened.

        Args:
            items: Pages or whole documents, as InputItem or plain mappings.
            base_metadata: Metadata shared by every chunk of the batch. Its
                "externalSources" list is combined with each item's own.
            source_file_name: Name used in chunk titles. Falls back to the
                item title, then to the default document name.

        Returns:
            ChunkingResult with chunks in input order and run counters.

        Raises:
            pydantic.ValidationError: If a mapping is not a valid InputItem.
        """
        base = dict(base_metadata or {})
        run = _Run()

        for raw_item in items:
            item = raw_item if isinstance(raw_item, InputItem) else InputItem.model_validate(raw_item)
            run.stats.items_received += 1

            text = sanitize(item.data)
            if not text:
                run.stats.items_skipped += 1
                logger.debug("Skipping blank item %r", item.title)
                continue

            file_name = source_file_name or item.title or self._default_name
            external_sources = self._merge_external_sources(base, item)
            self._chunk_item(run, text, item, file_name, base, external_sources)

        chunks = run.chunks
        if len(chunks) > self._max_total:
            chunks = self._merge_for_limit(chunks)
            run.stats.merged_for_limit = True

        run.stats.chunks_emitted = len(chunks)
        logger.info(
            "Chunked %d items into %d chunks (%d skipped, %d duplicates dropped)",
            run.stats.items_received,
            run.stats.chunks_emitted,
            run.stats.items_skipped,
            run.stats.duplicates_dropped,
        )
        return ChunkingResult(chunks=chunks, stats=run.stats)

    def _chunk_item(
        self,
        run: _Run,
        text: str,
        item: InputItem,
        file_name: str,
        base: dict[str, Any],
        external_sources: list[dict[str, Any]],
    ) -> None:
        def metadata(extra: dict[str, Any]) -> dict[str, Any]:
            merged = {**base, **extra, "pageNumber": item.page_number}
            if external_sources:
                merged.pop("externalSources", None)
                merged["externalSources"] = list(external_sources)
            return merged

        structure = detect_units(text, self._min_unit_len)
        logger.debug("Item %r: %s (%d units)", file_name, structure.kind, len(structure.units))

        if structure.kind == "generic":
            chunks = self._splitter.split(text)
            for idx, chunk in enumerate(chunks):
                run.emit(
                    f"{file_name} :: chunk [{idx + 1}/{len(chunks)}]",
                    metadata({"sectionType": SectionType.GENERIC.value, "chunkIndex": idx}),
                    chunk,
                )
            return

        for unit in structure.units:
            if isinstance(unit, ChapterUnit):
                locator = f"BAB {unit.roman_numeral}"
                header = None
                extra = {
                    "sectionType": SectionType.BAB.value,
                    "babRoman": unit.roman_numeral,
                    "babTitle": unit.title,
                }
                chunks = self._group(run, self._splitter.split(unit.content), locator)
            elif isinstance(unit, ArticleUnit):
                locator = f"Pasal {unit.article_number}"
                header = self._article_header(unit)
                extra = {
                    "sectionType": SectionType.PASAL.value,
                    "pasalNo": unit.article_number,
                    "pasalTitle": unit.article_title,
                    "babRoman": unit.chapter_roman_numeral,
                    "babTitle": unit.chapter_title,
                }
                limit = self._splitter.budget(len(header) + 2)
                chunks = self._group(
                    run, self._splitter.split_article(unit.content, limit), locator
                )
            else:
                locator, header = self._section_labels(unit)
                extra = {
                    "sectionType": unit.section_type.value,
                    "secNo": unit.section_number,
                    "secTitle": unit.section_title,
                }
                limit = self._splitter.budget(len(header) + 2)
                chunks = self._group(run, self._splitter.split(unit.content, limit), locator)

            for idx, chunk in enumerate(chunks):
                payload = f"{header}\n\n{chunk}".strip() if header else chunk.strip()
                run.emit(
                    f"{file_name} :: {locator} [{idx + 1}/{len(chunks)}]",
                    metadata(extra),
                    payload,
                )

    def _group(self, run: _Run, chunks: list[str], locator: str) -> list[str]:
        capped = self._splitter.cap_group(chunks)
        if len(capped) < len(chunks):
            run.stats.groups_capped += 1
            logger.warning(
                "%s produced %d chunks; merged down to %d", locator, len(chunks), len(capped)
            )
        return capped

    @staticmethod
    def _article_header(unit: ArticleUnit) -> str:
        lines: list[str] = []
        if unit.chapter_roman_numeral:
            chapter = f"BAB {unit.chapter_roman_numeral}"
            if unit.chapter_title:
                chapter += f": {unit.chapter_title}"
            lines.append(chapter)
        article = f"Pasal {unit.article_number}"
        if unit.article_title:
            article += f". {unit.article_title}"
        lines.append(article)
        return "\n".join(lines)

    @staticmethod
    def _section_labels(unit: SectionUnit) -> tuple[str, str]:
        """Return (title locator, payload header) for a section unit."""
        if unit.section_number:
            locator = f"Section {unit.section_number}"
            header = f"{locator} - {unit.section_title}" if unit.section_title else locator
            return locator, header
        title = unit.section_title or ""
        return title, title

    @staticmethod
    def _merge_external_sources(
        base: Mapping[str, Any], item: InputItem
    ) -> list[dict[str, Any]]:
        """Concatenate base and item external sources, without dedup."""
        sources: list[dict[str, Any]] = []
        if isinstance(base.get("externalSources"), list):
            sources.extend(base["externalSources"])
        if item.external_sources:
            sources.extend(item.external_sources)
        return sources

    def _merge_for_limit(self, chunks: list[OutputChunk]) -> list[OutputChunk]:
        """Collapse consecutive runs of ``k`` chunks so at most ``max_total`` remain."""
        k = math.ceil(len(chunks) / self._max_total)
        merged: list[OutputChunk] = []
        for start in range(0, len(chunks), k):
            group = chunks[start : start + k]
            first = group[0]
            merged.append(
                OutputChunk(
                    title=_POSITION_RE.sub("[merged]", first.title, count=1),
                    metadata={**first.metadata, "note": "merged_for_limit"},
                    data="\n\n".join(chunk.data for chunk in group),
                )
            )

        logger.warning(
            "Chunk count %d exceeds limit %d; merged every %d chunks into %d",
            len(chunks),
            self._max_total,
            k,
            len(merged),
        )
        return merged

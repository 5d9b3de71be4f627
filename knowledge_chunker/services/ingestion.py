"""
Ingestion Service

Runs the training-side ingestion of a single document:
load text → pages → chunk → processing result.

The training payload (filename + metadata) is passed in explicitly; it
supplies the base metadata and the source name for every chunk.
"""

import logging
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from knowledge_chunker.core.config import settings
from knowledge_chunker.core.logging import setup_logging
from knowledge_chunker.schemas.chunking import InputItem, OutputChunk
from knowledge_chunker.schemas.ingestion import (
    ExternalSource,
    ProcessingResult,
    TrainingRequest,
)
from knowledge_chunker.services.chunking import DocumentChunker

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Base exception for ingestion pipeline errors."""


class UnsupportedFileTypeError(IngestionError):
    """Raised when a file extension is not accepted by the text loader."""

    def __init__(self, path: Path, allowed: Sequence[str]) -> None:
        self.path = path
        super().__init__(
            f"File type {path.suffix or '(none)'} not allowed for {path.name}. "
            f"Supported: {', '.join(allowed)}"
        )


class TextDocumentLoader:
    """Reads UTF-8 text files into one InputItem per page.

    Pages are separated by ``page_break`` (form feed by default); a file
    without page breaks is a single page.

    Args:
        extensions: Accepted suffixes. Defaults to settings.TEXT_FILE_EXTENSIONS.
        page_break: Page separator. Defaults to settings.PAGE_BREAK.
    """

    def __init__(
        self,
        extensions: Sequence[str] | None = None,
        page_break: str | None = None,
    ) -> None:
        self._extensions = [e.lower() for e in (extensions or settings.TEXT_FILE_EXTENSIONS)]
        self._page_break = page_break or settings.PAGE_BREAK

    def load(self, path: Path, title: str | None = None) -> list[InputItem]:
        """Load a text file as pages.

        Args:
            path: File to read.
            title: Item title. Defaults to the file name.

        Returns:
            InputItems with 1-based page numbers, blank pages included.

        Raises:
            FileNotFoundError: If path does not exist.
            UnsupportedFileTypeError: If the suffix is not accepted.
        """
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        if path.suffix.lower() not in self._extensions:
            raise UnsupportedFileTypeError(path, self._extensions)

        text = path.read_text(encoding="utf-8")
        return list(self._pages(text, title or path.name))

    def _pages(self, text: str, title: str) -> Iterator[InputItem]:
        for number, page in enumerate(text.split(self._page_break), start=1):
            yield InputItem(title=title, data=page, page_number=number)


def normalize_external_sources(sources: Any) -> list[dict[str, Any]]:
    """Validate external source descriptors, detecting missing link types.

    Entries that are not valid descriptors are dropped with a warning.
    """
    if not isinstance(sources, list):
        return []

    normalized: list[dict[str, Any]] = []
    for raw in sources:
        try:
            normalized.append(ExternalSource.model_validate(raw).to_wire())
        except ValidationError as exc:
            logger.warning("Ignoring invalid external source %r: %s", raw, exc.error_count())
    return normalized


def _text_stats(items: Sequence[InputItem]) -> tuple[int, int, int]:
    """Word, line and character counts over all item text."""
    text = "\n".join(item.data or "" for item in items)
    return len(text.split()), len(text.splitlines()), len(text)


class IngestionService:
    """Chunks a document on behalf of a training request.

    Entry point of the ingestion path; configures logging on creation.

    Args:
        chunker: DocumentChunker to use. A default one is created if omitted.
        loader: TextDocumentLoader for :meth:`ingest_file`.
    """

    def __init__(
        self,
        chunker: DocumentChunker | None = None,
        loader: TextDocumentLoader | None = None,
    ) -> None:
        setup_logging()
        self._chunker = chunker or DocumentChunker()
        self._loader = loader or TextDocumentLoader()

    def ingest(
        self,
        request: TrainingRequest,
        items: Sequence[InputItem],
    ) -> tuple[list[OutputChunk], ProcessingResult]:
        """Chunk pre-extracted pages for a training request.

        Args:
            request: Training payload; ``metadata`` becomes the base metadata
                and ``filename`` the source name of every chunk.
            items: Extracted pages of the document.

        Returns:
            Tuple of (chunks, processing result).

        Raises:
            IngestionError: If no chunks were produced.
        """
        base_metadata = dict(request.metadata)
        if "externalSources" in base_metadata:
            base_metadata["externalSources"] = normalize_external_sources(
                base_metadata["externalSources"]
            )

        result = self._chunker.run(
            items,
            base_metadata=base_metadata,
            source_file_name=request.filename,
        )
        if not result.chunks:
            raise IngestionError(
                f"No chunks produced for {request.filename or 'document'}; pages may be empty"
            )

        words, lines, characters = _text_stats(items)
        processing = ProcessingResult(
            word_count=words,
            line_count=lines,
            character_count=characters,
            file_type=Path(request.filename).suffix.lower() if request.filename else "",
            chunk_count=len(result.chunks),
            processed_at=datetime.now(UTC).isoformat(),
        )

        logger.info(
            "Ingested %s: %d pages, %d chunks",
            request.filename,
            len(items),
            processing.chunk_count,
        )
        return result.chunks, processing

    def ingest_file(
        self,
        request: TrainingRequest,
        path: Path,
    ) -> tuple[list[OutputChunk], ProcessingResult]:
        """Load a text file and chunk it for a training request.

        Raises:
            UnsupportedFileTypeError: If the file type is not accepted.
            IngestionError: If the file is missing or yields no chunks.
        """
        try:
            items = self._loader.load(path, title=request.filename)
        except FileNotFoundError as exc:
            raise IngestionError(f"Failed to load document: {exc}") from exc

        if request.filename is None:
            request = request.model_copy(update={"filename": path.name})
        return self.ingest(request, items)

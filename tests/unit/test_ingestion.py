"""
Ingestion Service Unit Tests

Tests TextDocumentLoader and IngestionService on temporary files.
No network, no database.
"""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from knowledge_chunker.schemas.chunking import ChunkingResult, InputItem
from knowledge_chunker.schemas.ingestion import TrainingRequest
from knowledge_chunker.services.chunking import DocumentChunker
from knowledge_chunker.services.ingestion import (
    IngestionError,
    IngestionService,
    TextDocumentLoader,
    UnsupportedFileTypeError,
    normalize_external_sources,
)

PAGE_ONE = (
    "BAB I. Ketentuan Umum\n"
    "Peraturan ini mengatur hak dan kewajiban seluruh karyawan perusahaan."
)
PAGE_TWO = (
    "BAB II. Cuti\n"
    "Setiap karyawan berhak atas cuti tahunan sebanyak dua belas hari kerja."
)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class TestTextDocumentLoader:
    """Tests for TextDocumentLoader.load()."""

    def test_splits_pages_on_form_feed(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "peraturan.txt", f"{PAGE_ONE}\f{PAGE_TWO}")
        items = TextDocumentLoader().load(path)

        assert [i.page_number for i in items] == [1, 2]
        assert [i.data for i in items] == [PAGE_ONE, PAGE_TWO]
        assert all(i.title == "peraturan.txt" for i in items)

    def test_single_page_without_breaks(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "notes.md", PAGE_ONE)
        items = TextDocumentLoader().load(path, title="Notes")

        assert len(items) == 1
        assert items[0].title == "Notes"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            TextDocumentLoader().load(tmp_path / "missing.txt")

    def test_unsupported_extension_raises(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "scan.pdf", "binary")
        with pytest.raises(UnsupportedFileTypeError, match=r"\.pdf"):
            TextDocumentLoader().load(path)

    def test_custom_extensions_and_page_break(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "export.log", "one\n===\ntwo")
        items = TextDocumentLoader(extensions=[".LOG"], page_break="\n===\n").load(path)
        assert [i.data for i in items] == ["one", "two"]


# ---------------------------------------------------------------------------
# External sources
# ---------------------------------------------------------------------------


def test_normalize_external_sources_detects_type() -> None:
    sources = normalize_external_sources(
        [
            {"id": "1", "name": "Drive", "url": "https://drive.google.com/file/d/abc"},
            {"id": "2", "name": "Portal", "url": "https://hr.example.com", "type": "download"},
        ]
    )
    assert sources == [
        {"id": "1", "name": "Drive", "url": "https://drive.google.com/file/d/abc", "type": "googledrive"},
        {"id": "2", "name": "Portal", "url": "https://hr.example.com", "type": "download"},
    ]


def test_normalize_external_sources_drops_invalid() -> None:
    assert normalize_external_sources(["not-a-dict", {"name": "ok", "url": "https://a"}]) == [
        {"name": "ok", "url": "https://a", "type": "url"}
    ]


def test_normalize_external_sources_non_list() -> None:
    assert normalize_external_sources(None) == []


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestIngestionService:
    """Tests for IngestionService.ingest() and ingest_file()."""

    def test_ingest_file_end_to_end(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "peraturan.txt", f"{PAGE_ONE}\f{PAGE_TWO}\f   ")
        request = TrainingRequest(
            filename="Peraturan Perusahaan.txt",
            metadata={"department": "HR"},
            file_id=7,
        )

        chunks, result = IngestionService().ingest_file(request, path)

        assert [c.title for c in chunks] == [
            "Peraturan Perusahaan.txt :: BAB I [1/1]",
            "Peraturan Perusahaan.txt :: BAB II [1/1]",
        ]
        assert [c.metadata["pageNumber"] for c in chunks] == [1, 2]
        assert all(c.metadata["department"] == "HR" for c in chunks)
        assert result.chunk_count == 2
        assert result.file_type == ".txt"
        assert result.processed_by == "chunker"
        assert result.character_count == len(f"{PAGE_ONE}\n{PAGE_TWO}\n   ")
        assert result.word_count == len(f"{PAGE_ONE} {PAGE_TWO}".split())

    def test_ingest_file_uses_path_name_without_filename(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "handbook.txt", PAGE_ONE)
        chunks, _ = IngestionService().ingest_file(TrainingRequest(), path)
        assert chunks[0].title == "handbook.txt :: BAB I [1/1]"

    def test_ingest_file_missing_raises_ingestion_error(self, tmp_path: Path) -> None:
        with pytest.raises(IngestionError, match="Failed to load") as exc_info:
            IngestionService().ingest_file(TrainingRequest(), tmp_path / "missing.txt")
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_ingest_file_unsupported_type(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "scan.docx", "binary")
        with pytest.raises(IngestionError):
            IngestionService().ingest_file(TrainingRequest(), path)

    def test_ingest_blank_pages_raises(self) -> None:
        request = TrainingRequest(filename="empty.txt")
        with pytest.raises(IngestionError, match="No chunks produced"):
            IngestionService().ingest(request, [InputItem(data=""), InputItem(data="  ")])

    def test_ingest_normalizes_external_sources(self) -> None:
        request = TrainingRequest(
            filename="Cuti.txt",
            metadata={
                "externalSources": [
                    {"name": "Policy", "url": "https://corp.sharepoint.com/cuti", "type": "view"}
                ]
            },
        )
        chunks, _ = IngestionService().ingest(request, [InputItem(data=PAGE_ONE)])

        assert chunks[0].metadata["externalSources"] == [
            {"name": "Policy", "url": "https://corp.sharepoint.com/cuti", "type": "onedrive"}
        ]
        # Request metadata itself is left untouched
        assert request.metadata["externalSources"][0]["type"] == "view"

    def test_ingest_passes_request_to_chunker(self) -> None:
        chunker = MagicMock(spec=DocumentChunker)
        chunker.run.return_value = ChunkingResult()
        items = [InputItem(data=PAGE_ONE)]
        request = TrainingRequest(filename="a.txt", metadata={"k": "v"})

        with pytest.raises(IngestionError):
            IngestionService(chunker=chunker).ingest(request, items)

        chunker.run.assert_called_once_with(
            items, base_metadata={"k": "v"}, source_file_name="a.txt"
        )

    def test_service_configures_logging(self, monkeypatch: pytest.MonkeyPatch) -> None:
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        IngestionService()

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

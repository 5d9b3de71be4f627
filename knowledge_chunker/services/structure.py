"""
Structural Parsers

Detects the dominant structure of a document and splits it into units:
legal chapters ("BAB IV"), legal articles ("Pasal 12") or policy sections
("6.4. Travel", "Purpose"). Each parser is a small accumulator that
consumes lines and yields a unit whenever the next marker (or the end
of the text) closes the current one.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from typing import Literal, NamedTuple

from knowledge_chunker.core.config import settings
from knowledge_chunker.schemas.chunking import (
    ArticleUnit,
    ChapterUnit,
    SectionUnit,
    StructuralUnit,
)

logger = logging.getLogger(__name__)

# "BAB IV. Ketentuan Umum", optionally behind markdown heading marks
_CHAPTER_RE = re.compile(r"^#*\s*BAB\s+([IVXLCDM]+)\b\.?\s*(.*)$", re.IGNORECASE)

# "Pasal 12", "Pasal 3A: Cuti", "Pasal 7) Sanksi"
_ARTICLE_RE = re.compile(r"^Pasal\s+(\d{1,3}[A-Z]?)[:\.\)]?\s*(.*)$", re.IGNORECASE)

# Deepest level first so "6.4.1." is not read as "6."
_SECTION_RES = (
    re.compile(r"^(\d+\.\d+\.\d+)\.\s+(.+)$"),
    re.compile(r"^(\d+\.\d+)\.\s+(.+)$"),
    re.compile(r"^(\d+)\.\s+(.+)$"),
)

_KEYWORD_RE = re.compile(
    r"^(Policy|Purpose|Scope|Objectives?|Responsibilit(?:y|ies)"
    r"|Related Documents?|General Standards?|Appendix)\b(.*)$",
    re.IGNORECASE,
)

# Table-of-contents entry: "6.4 Travel Policy\t24"
_TOC_ENTRY_RE = re.compile(r"^\d+(\.\d+)*\s+.+\t\d+$")

StructureKind = Literal["chapters", "articles", "sections", "generic"]


class DetectedStructure(NamedTuple):
    """Parser family chosen for a text and the units it produced."""

    kind: StructureKind
    units: list[StructuralUnit]


def _optional(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def iter_chapters(lines: Iterable[str]) -> Iterator[ChapterUnit]:
    """Yield one unit per "BAB" marker; lines before the first marker are ignored."""
    roman: str | None = None
    title: str | None = None
    buf: list[str] = []

    for line in lines:
        match = _CHAPTER_RE.match(line)
        if match:
            if roman is not None:
                yield ChapterUnit(roman_numeral=roman, title=title, content="\n".join(buf).strip())
            roman = match.group(1).strip()
            title = _optional(match.group(2))
            buf = [line]
            continue
        if roman is not None:
            buf.append(line)

    if roman is not None:
        yield ChapterUnit(roman_numeral=roman, title=title, content="\n".join(buf).strip())


def iter_articles(
    lines: Iterable[str],
    min_content_len: int | None = None,
) -> Iterator[ArticleUnit]:
    """Yield "Pasal" units tagged with the enclosing chapter.

    Chapter markers only update the chapter context (and close the open
    article); they are not emitted. Articles whose content is shorter
    than ``min_content_len`` are dropped.
    """
    min_len = min_content_len if min_content_len is not None else settings.CHUNK_MIN_UNIT_LEN
    chapter: tuple[str | None, str | None] = (None, None)
    current: dict[str, str | None] | None = None
    buf: list[str] = []

    def close() -> ArticleUnit | None:
        if current is None:
            return None
        content = "\n".join(buf).strip()
        if not current["number"] or len(content) < min_len:
            return None
        return ArticleUnit(
            chapter_roman_numeral=current["chapter_roman"],
            chapter_title=current["chapter_title"],
            article_number=current["number"],
            article_title=current["title"],
            content=content,
        )

    for line in lines:
        chapter_match = _CHAPTER_RE.match(line)
        if chapter_match:
            unit = close()
            if unit is not None:
                yield unit
            current, buf = None, []
            chapter = (chapter_match.group(1).strip(), _optional(chapter_match.group(2)))
            continue

        article_match = _ARTICLE_RE.match(line)
        if article_match:
            unit = close()
            if unit is not None:
                yield unit
            current = {
                "chapter_roman": chapter[0],
                "chapter_title": chapter[1],
                "number": article_match.group(1),
                "title": _optional(article_match.group(2)),
            }
            buf = []
            continue

        if current is not None:
            buf.append(line)

    unit = close()
    if unit is not None:
        yield unit


def _match_heading(clean: str) -> tuple[str | None, str | None, str | None] | None:
    """Return (number, title, remainder) for a heading line, else None."""
    for pattern in _SECTION_RES:
        match = pattern.match(clean)
        if match:
            title = match.group(2).strip().rstrip(":-").strip()
            return match.group(1), title or None, None

    match = _KEYWORD_RE.match(clean)
    if match:
        remainder = match.group(2).lstrip(" \t:-").strip()
        return None, match.group(1), remainder or None
    return None


def iter_sections(
    lines: Iterable[str],
    min_content_len: int | None = None,
) -> Iterator[SectionUnit]:
    """Yield numbered or keyword policy sections, skipping TOC entries.

    A keyword heading that carries text on the same line
    ("Purpose: To define...") is kept as the first content line.
    """
    min_len = min_content_len if min_content_len is not None else settings.CHUNK_MIN_UNIT_LEN
    current: tuple[str | None, str | None] | None = None
    buf: list[str] = []

    def close() -> SectionUnit | None:
        if current is None:
            return None
        number, title = current
        content = "\n".join(buf).strip()
        if not (number or title) or len(content) < min_len:
            return None
        return SectionUnit(section_number=number, section_title=title, content=content)

    for line in lines:
        clean = line.strip()
        if _TOC_ENTRY_RE.match(clean):
            continue

        heading = _match_heading(clean)
        if heading is not None:
            unit = close()
            if unit is not None:
                yield unit
            number, title, remainder = heading
            current = (number, title)
            buf = [clean] if remainder else []
            continue

        if current is not None:
            buf.append(line)

    unit = close()
    if unit is not None:
        yield unit


def detect_units(text: str, min_content_len: int | None = None) -> DetectedStructure:
    """Run the parsers in priority order and keep the first that matches.

    Chapters win over articles, articles over sections. When none of them
    yields a unit the whole text is a single generic unit (``units`` empty).

    Args:
        text: Sanitized document text.
        min_content_len: Minimum article/section content length.

    Returns:
        DetectedStructure with the chosen kind and its units.
    """
    lines = text.split("\n")

    chapters: list[StructuralUnit] = list(iter_chapters(lines))
    if chapters:
        return DetectedStructure("chapters", chapters)

    articles: list[StructuralUnit] = list(iter_articles(lines, min_content_len))
    if articles:
        return DetectedStructure("articles", articles)

    sections: list[StructuralUnit] = list(iter_sections(lines, min_content_len))
    if sections:
        return DetectedStructure("sections", sections)

    logger.debug("No structural markers found; using generic unit")
    return DetectedStructure("generic", [])
